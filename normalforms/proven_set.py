from __future__ import annotations

from bisect import bisect_left, insort
from typing import Iterable, Iterator

WORD_BITS = 64
_WORD_SHIFT = 6
_WORD_MASK = WORD_BITS - 1

NO_ELEMENT = -1


def _lowest_bit(word: int) -> int:
    return (word & -word).bit_length() - 1


class ProvenSet:
    """Sparse ordered set of non-negative integers (propositions).

    Elements are stored as 64-bit words keyed by block index, so a set holding
    {3, 120810} costs two words rather than a 120k-bit bitmap. The block index
    list is kept sorted, which gives ascending iteration and cheap
    `next_element` lookups.

    The public interface never mutates a set once built: phrases are stored in
    hash-keyed collections, so set algebra always returns a new instance.
    """

    __slots__ = ("_words", "_blocks", "_hash")

    def __init__(self, elements: Iterable[int] = ()) -> None:
        self._words: dict[int, int] = {}
        self._blocks: list[int] = []
        self._hash: int | None = None
        for element in elements:
            self._set(element)

    @classmethod
    def _from_words(cls, words: dict[int, int]) -> ProvenSet:
        result = cls()
        result._words = {block: word for block, word in words.items() if word}
        result._blocks = sorted(result._words)
        return result

    def _set(self, element: int) -> None:
        if isinstance(element, bool) or not isinstance(element, int):
            raise ValueError(f"Proposition must be an int, got {element!r}")
        if element < 0:
            raise ValueError(f"Proposition must be non-negative, got {element}")
        block = element >> _WORD_SHIFT
        word = self._words.get(block, 0)
        if not word:
            insort(self._blocks, block)
        self._words[block] = word | (1 << (element & _WORD_MASK))
        self._hash = None

    # Set algebra

    @classmethod
    def union(cls, a: ProvenSet, b: ProvenSet) -> ProvenSet:
        words = dict(a._words)
        for block, word in b._words.items():
            words[block] = words.get(block, 0) | word
        return cls._from_words(words)

    @classmethod
    def intersect(cls, a: ProvenSet, b: ProvenSet) -> ProvenSet:
        small, large = (a, b) if len(a._words) <= len(b._words) else (b, a)
        words = {block: word & large._words.get(block, 0) for block, word in small._words.items()}
        return cls._from_words(words)

    @classmethod
    def xor(cls, a: ProvenSet, b: ProvenSet) -> ProvenSet:
        words = dict(a._words)
        for block, word in b._words.items():
            words[block] = words.get(block, 0) ^ word
        return cls._from_words(words)

    @staticmethod
    def intersects_more_than_once(a: ProvenSet, b: ProvenSet) -> bool:
        """Return True iff `a` and `b` share at least two elements.

        Walks both sets in ascending order and stops at the second common
        element; the intersection is never built.
        """
        found = False
        i = a.min_element()
        j = b.next_element(i) if i >= 0 else NO_ELEMENT
        while i >= 0 and j >= 0:
            if i < j:
                i = a.next_element(j)
            elif i > j:
                j = b.next_element(i)
            else:
                if found:
                    return True
                found = True
                i = a.next_element(i + 1)
                j = b.next_element(j + 1)
        return False

    def intersects(self, other: ProvenSet) -> bool:
        small, large = (self, other) if len(self._words) <= len(other._words) else (other, self)
        return any(word & large._words.get(block, 0) for block, word in small._words.items())

    def is_subset_of(self, other: ProvenSet) -> bool:
        if len(self._words) > len(other._words):
            return False
        for block, word in self._words.items():
            if word & ~other._words.get(block, 0):
                return False
        return True

    def with_element(self, element: int) -> ProvenSet:
        result = self.clone()
        result._set(element)
        return result

    def clone(self) -> ProvenSet:
        return ProvenSet._from_words(self._words)

    # Iteration primitives

    def cardinality(self) -> int:
        return sum(word.bit_count() for word in self._words.values())

    def is_empty(self) -> bool:
        return not self._words

    def min_element(self) -> int:
        if not self._blocks:
            return NO_ELEMENT
        block = self._blocks[0]
        return (block << _WORD_SHIFT) + _lowest_bit(self._words[block])

    def next_element(self, from_inclusive: int) -> int:
        """Smallest element >= `from_inclusive`, or NO_ELEMENT (-1)."""
        if from_inclusive < 0:
            from_inclusive = 0
        block = from_inclusive >> _WORD_SHIFT
        index = bisect_left(self._blocks, block)
        if index == len(self._blocks):
            return NO_ELEMENT
        found = self._blocks[index]
        word = self._words[found]
        if found == block:
            word &= -1 << (from_inclusive & _WORD_MASK)
            if not word:
                index += 1
                if index == len(self._blocks):
                    return NO_ELEMENT
                found = self._blocks[index]
                word = self._words[found]
        return (found << _WORD_SHIFT) + _lowest_bit(word)

    # Python protocol

    def __iter__(self) -> Iterator[int]:
        for block in self._blocks:
            word = self._words[block]
            base = block << _WORD_SHIFT
            while word:
                low = word & -word
                yield base + low.bit_length() - 1
                word ^= low

    def __len__(self) -> int:
        return self.cardinality()

    def __bool__(self) -> bool:
        return bool(self._words)

    def __contains__(self, element: object) -> bool:
        if isinstance(element, bool) or not isinstance(element, int) or element < 0:
            return False
        word = self._words.get(element >> _WORD_SHIFT, 0)
        return bool(word >> (element & _WORD_MASK) & 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProvenSet):
            return NotImplemented
        return self._words == other._words

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._words.items()))
        return self._hash

    def __repr__(self) -> str:
        return "{" + ", ".join(str(element) for element in self) + "}"
