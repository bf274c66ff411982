"""Namespace trie: storage and matching of subscriptions by segment path."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from nsbus.kernel.types import DiagnosticSink, Subscription, SubscriptionHandle

WILDCARD = "*"

DispatchFn = Callable[[List[Subscription], tuple, bool], None]


class TrieNode:
    """One namespace segment: child nodes by segment plus the subscriptions registered here."""

    __slots__ = ("children", "subscriptions")

    def __init__(self) -> None:
        self.children: Dict[str, TrieNode] = {}
        self.subscriptions: List[Subscription] = []


@dataclass(frozen=True)
class _Traversal:
    segments: Tuple[str, ...]
    namespace: str
    args: tuple
    dispatch: DispatchFn
    recurrent: bool
    depth: Optional[int]
    deferred: bool

    @property
    def total(self) -> int:
        return len(self.segments)

    def bubbles_at(self, consumed: int) -> bool:
        # The terminal node is dispatched once by the exhausted-path step.
        if not self.recurrent or consumed >= self.total:
            return False
        if self.depth is None:
            return True
        return consumed >= self.total - self.depth


class NamespaceTrie:
    def __init__(self, separator: str = "/", log: Optional[DiagnosticSink] = None) -> None:
        self._root = TrieNode()
        self._separator = separator
        self._log = log

    @property
    def root(self) -> TrieNode:
        return self._root

    def insert(self, segments: Sequence[str], subscription: Subscription) -> SubscriptionHandle:
        node = self._root
        for segment in segments:
            child = node.children.get(segment)
            if child is None:
                child = TrieNode()
                node.children[segment] = child
            node = child
        node.subscriptions.append(subscription)
        return SubscriptionHandle(
            namespace=self._separator.join(segments),
            subscription_id=subscription.subscription_id,
        )

    def find(self, segments: Sequence[str]) -> Optional[TrieNode]:
        node = self._root
        for segment in segments:
            node = node.children.get(segment)
            if node is None:
                return None
        return node

    def remove(self, segments: Sequence[str], subscription_id: Optional[int] = None) -> bool:
        """Remove one subscription by id, or detach the whole subtree when no id is given.

        Returns False when nothing was removed. A missing path is reported to the
        diagnostic sink and otherwise ignored.
        """
        if not segments:
            return False

        parent = self.find(segments[:-1])
        node = None if parent is None else parent.children.get(segments[-1])
        if node is None:
            self._warn("There is no {0} subscription".format(self._separator.join(segments)))
            return False

        if subscription_id is None:
            del parent.children[segments[-1]]
            return True

        for index, subscription in enumerate(node.subscriptions):
            if subscription.subscription_id == subscription_id:
                del node.subscriptions[index]
                return True
        return False

    def match_and_dispatch(
        self,
        segments: Sequence[str],
        args: tuple,
        dispatch: DispatchFn,
        *,
        recurrent: bool = False,
        depth: Optional[int] = None,
        deferred: bool = False,
    ) -> None:
        traversal = _Traversal(
            segments=tuple(segments),
            namespace=self._separator.join(segments),
            args=args,
            dispatch=dispatch,
            recurrent=recurrent,
            depth=depth,
            deferred=deferred,
        )
        if not self._descend(self._root, 0, traversal):
            self._warn("There is no {0} subscription".format(traversal.namespace))

    def _descend(self, node: TrieNode, consumed: int, traversal: _Traversal) -> bool:
        """Dispatch along every branch matching the remaining segments.

        Returns True when at least one branch resolved the whole path.
        """
        resolved = False
        while True:
            if consumed >= traversal.total:
                traversal.dispatch(node.subscriptions, traversal.args, traversal.deferred)
                return True

            segment = traversal.segments[consumed]

            if segment == WILDCARD:
                # Publish-side wildcard: one level wide, the "*" child included once.
                children = list(node.children.values())
                for child in children:
                    traversal.dispatch(child.subscriptions, traversal.args, traversal.deferred)
                return resolved or bool(children)

            wildcard = node.children.get(WILDCARD)
            if wildcard is not None:
                # The "*" node stands for this segment only; it is not an ancestor.
                resolved = self._descend(wildcard, consumed + 1, traversal) or resolved

            child = node.children.get(segment)
            if child is None:
                return resolved

            node = child
            consumed += 1
            if traversal.bubbles_at(consumed):
                traversal.dispatch(node.subscriptions, traversal.args, traversal.deferred)

    def walk(self) -> List[Tuple[str, int]]:
        """Every namespace below the root with its subscription count, depth first."""
        out: List[Tuple[str, int]] = []
        stack: List[Tuple[str, TrieNode]] = [
            (segment, child) for segment, child in reversed(list(self._root.children.items()))
        ]
        while stack:
            path, node = stack.pop()
            out.append((path, len(node.subscriptions)))
            for segment, child in reversed(list(node.children.items())):
                stack.append(("{0}{1}{2}".format(path, self._separator, segment), child))
        return out

    def _warn(self, message: str) -> None:
        if self._log is not None:
            self._log.warn(message)
