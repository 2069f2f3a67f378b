# quran_search/engine/trie.py
"""
Character trie over index terms, used for prefix and fuzzy term expansion.
"""
from typing import Dict, Iterable, Iterator, List

# Terms are made of single characters, so "" can never be an edge label
_END = ""


class TermTrie:
    """
    Dict-of-dicts trie.

    Each node maps a character to its child node; a node holding the
    `_END` key terminates a term.
    """

    def __init__(self, terms: Iterable[str] = ()):
        self._root: dict = {}
        self._size = 0
        for term in terms:
            self.add(term)

    def add(self, term: str) -> None:
        node = self._root
        for char in term:
            node = node.setdefault(char, {})
        if _END not in node:
            node[_END] = True
            self._size += 1

    def discard(self, term: str) -> None:
        """Remove a term, pruning branches left empty."""
        path = []
        node = self._root
        for char in term:
            if char not in node:
                return
            path.append((node, char))
            node = node[char]
        if _END not in node:
            return
        del node[_END]
        self._size -= 1
        for parent, char in reversed(path):
            if parent[char]:
                break
            del parent[char]

    def _find(self, prefix: str):
        node = self._root
        for char in prefix:
            node = node.get(char)
            if node is None:
                return None
        return node

    def __contains__(self, term: str) -> bool:
        node = self._find(term)
        return node is not None and _END in node

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:
        return iter(self.with_prefix(""))

    def with_prefix(self, prefix: str) -> List[str]:
        """All terms starting with `prefix` (including `prefix` itself)."""
        node = self._find(prefix)
        if node is None:
            return []

        terms = []
        stack = [(node, prefix)]
        while stack:
            node, path = stack.pop()
            for char, child in node.items():
                if char == _END:
                    terms.append(path)
                else:
                    stack.append((child, path + char))
        return terms

    def fuzzy(self, term: str, max_distance: int) -> Dict[str, int]:
        """
        Terms within `max_distance` Levenshtein edits of `term`.

        Walks the trie computing one edit-distance row per node and stops
        descending once every cell of the row exceeds the bound.
        """
        results: Dict[str, int] = {}
        first_row = list(range(len(term) + 1))

        if _END in self._root and len(term) <= max_distance:
            results[""] = len(term)

        for char, child in self._root.items():
            if char != _END:
                self._walk(child, char, char, term, first_row, max_distance, results)
        return results

    def _walk(self, node, char, path, term, prev_row, max_distance, results):
        row = [prev_row[0] + 1]
        for col in range(1, len(term) + 1):
            cost = 0 if term[col - 1] == char else 1
            row.append(min(
                row[col - 1] + 1,
                prev_row[col] + 1,
                prev_row[col - 1] + cost
            ))

        if _END in node and row[-1] <= max_distance:
            results[path] = row[-1]

        if min(row) <= max_distance:
            for next_char, child in node.items():
                if next_char != _END:
                    self._walk(child, next_char, path + next_char, term, row, max_distance, results)
