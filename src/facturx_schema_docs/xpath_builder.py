"""Assign absolute xpaths to every node of a built forest.

Paths are made of prefixed element names, e.g.
``/rsm:CrossIndustryInvoice/rsm:SupplyChainTradeTransaction/ram:IncludedSupplyChainTradeLineItem``.
When several siblings (or several roots) share a name, each of them gets a
1-based positional predicate (``ram:Note[1]``, ``ram:Note[2]``); a name that
occurs once stays bare. Positions follow the order in which children were
appended by the tree builder, i.e. schema declaration order, which keeps the
paths stable across runs and lets documentation rows be matched by exact
string comparison.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import ElementNode


def compute_xpaths(roots: Iterable[ElementNode]) -> Dict[ElementNode, str]:
    """Compute, store and return the absolute xpath of every node.

    Args:
        roots: The forest produced by the tree builder.

    Returns:
        Mapping of node → xpath. Each node's ``xpath`` attribute is set too.

    Example:
        >>> parent = ElementNode(name="A")
        >>> parent.children.extend([ElementNode(name="X"), ElementNode(name="Y"), ElementNode(name="X")])
        >>> paths = compute_xpaths([parent])
        >>> [child.xpath for child in parent.children]
        ['/A/X[1]', '/A/Y', '/A/X[2]']
    """
    result: Dict[ElementNode, str] = {}
    root_list = list(roots or [])
    stack: List[Tuple[ElementNode, str]] = _pending(root_list, "/")

    while stack:
        node, path = stack.pop()
        node.xpath = path
        result[node] = path
        if node.children:
            stack.extend(_pending(node.children, path + "/"))

    return result


def _pending(siblings: Sequence[ElementNode], prefix: str) -> List[Tuple[ElementNode, str]]:
    # reversed so that popping from the stack visits siblings in order
    return list(reversed(list(zip(siblings, _segments(siblings, prefix)))))


def _segments(siblings: Sequence[ElementNode], prefix: str) -> List[str]:
    """Return the path of each sibling, adding ``[k]`` to repeated names."""
    totals = Counter(node.name for node in siblings)
    seen: Counter = Counter()
    paths = []
    for node in siblings:
        path = prefix + (node.name or "*")
        if totals[node.name] > 1:
            seen[node.name] += 1
            path += f"[{seen[node.name]}]"
        paths.append(path)
    return paths
