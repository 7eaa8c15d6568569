from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass
class TranscriptTree:
    """
    Depth × rank grid of candidate words.

    ``grid[depth][rank]`` is the ``depth``-th word of the ``rank``-th
    hypothesis, or None when that hypothesis is shorter.
    """

    grid: List[List[Optional[str]]] = field(default_factory=list)
    max_rank: int = 0

    @property
    def max_depth(self) -> int:
        return len(self.grid) - 1

    def is_empty(self) -> bool:
        return not self.grid

    def candidates(self, depth: int) -> List[str]:
        """Words present at ``depth``, in rank order, duplicates kept."""
        return [word for word in self.grid[depth] if word is not None]


def build_transcript_tree(hypotheses: Sequence[str]) -> TranscriptTree:
    tokenized = [hypothesis.split() for hypothesis in hypotheses]
    depth_count = max((len(words) for words in tokenized), default=0)
    rank_count = len(tokenized)

    grid: List[List[Optional[str]]] = [[None] * rank_count for _ in range(depth_count)]
    for rank, words in enumerate(tokenized):
        for depth, word in enumerate(words):
            grid[depth][rank] = word
    return TranscriptTree(grid=grid, max_rank=rank_count)
