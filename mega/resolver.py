import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from . import config
from .errors import CommandNotFoundError, MalformedCommandTreeError
from .transcript import TranscriptTree

log = logging.getLogger(__name__)


@dataclass
class ResolvedCommand:
    path: Path
    # One slot per word position after the command; each holds every
    # candidate for that position in confidence order.
    argument_slots: List[List[str]] = field(default_factory=list)

    @property
    def arguments(self) -> List[str]:
        return [slot[0] for slot in self.argument_slots]

    @property
    def raw_arguments(self) -> List[List[str]]:
        return [list(slot) for slot in self.argument_slots]


def _is_path_segment(word: str) -> bool:
    return word not in (".", "..") and os.sep not in word and (os.altsep is None or os.altsep not in word)


def resolve_command(
    tree: TranscriptTree,
    root,
    script_ext: str = config.COMMAND_SCRIPT_EXT,
) -> ResolvedCommand:
    """
    Walk the command directory one transcript depth at a time.

    At each depth the candidates are tried in confidence order: the first one
    naming a directory is descended into, the first one naming a script ends
    the search. The walk never goes back to try a lower-ranked word at an
    earlier depth, so a confident word that opens a dead-end directory hides
    any command reachable through the alternatives.
    """
    node = Path(root)
    for depth in range(tree.max_depth + 1):
        for word in tree.candidates(depth):
            if not _is_path_segment(word):
                continue

            candidate = node / word
            if candidate.is_dir():
                log.debug("Resolver: depth %d matched directory %s", depth, candidate)
                node = candidate
                break
            if candidate.exists() and candidate.suffix != script_ext:
                raise MalformedCommandTreeError(candidate)

            script = node / f"{word}{script_ext}"
            if script.is_file():
                slots = [tree.candidates(d) for d in range(depth + 1, tree.max_depth + 1)]
                log.info("Resolver: matched %s with %d argument slot(s)", script, len(slots))
                return ResolvedCommand(path=script, argument_slots=slots)
        else:
            raise CommandNotFoundError(
                f"no command under {node} for any of {tree.candidates(depth)!r}"
            )

    raise CommandNotFoundError(f"transcript ended inside {node} without reaching a command")
