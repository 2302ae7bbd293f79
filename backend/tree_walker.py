"""
Tree Walker - depth-first traversal of the document tree.

A single explicit-stack walker shared by every scan, so tree depth is never
bounded by the interpreter's recursion limit. Each scan passes its own
pruning policy.
"""

import asyncio
from typing import AsyncIterator, Callable, Iterable, Iterator, List, Optional, Sequence

from figma_nodes import FigmaNode

Prune = Callable[[FigmaNode], bool]
ChildrenOf = Callable[[FigmaNode], Sequence[FigmaNode]]
OnTick = Callable[[int], object]


def default_children(node: FigmaNode) -> Sequence[FigmaNode]:
    return node.children or []


def walk(
    roots: Iterable[FigmaNode],
    prune: Optional[Prune] = None,
    children_of: Optional[ChildrenOf] = None,
) -> Iterator[FigmaNode]:
    """Yield nodes pre-order, siblings in document order.

    Args:
        roots: Nodes to start from, visited in the given order.
        prune: When it returns True for a node, that node is still yielded
            but its children are never enqueued.
        children_of: Which nodes to enqueue below a node; defaults to its
            children.
    """
    expand = children_of or default_children
    stack: List[FigmaNode] = list(roots)
    stack.reverse()
    while stack:
        node = stack.pop()
        yield node
        if prune is not None and prune(node):
            continue
        stack.extend(reversed(expand(node)))


async def walk_async(
    roots: Iterable[FigmaNode],
    prune: Optional[Prune] = None,
    children_of: Optional[ChildrenOf] = None,
    yield_every: int = 500,
    on_tick: Optional[OnTick] = None,
) -> AsyncIterator[FigmaNode]:
    """Same enumeration as `walk`, suspending every `yield_every` nodes.

    The suspension lets the event loop serve other work (websocket traffic,
    progress events). `on_tick(visited)` is called at each suspension point;
    it may be a coroutine function.
    """
    visited = 0
    for node in walk(roots, prune=prune, children_of=children_of):
        yield node
        visited += 1
        if yield_every > 0 and visited % yield_every == 0:
            if on_tick is not None:
                outcome = on_tick(visited)
                if asyncio.iscoroutine(outcome):
                    await outcome
            await asyncio.sleep(0)
