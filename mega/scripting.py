"""
Command script runtime.

A command script is a plain Python file run as a fresh, unregistered module.
Before it runs, the host injects its API as module globals:

    arguments      list[str]        best guess for each word after the command
    raw_arguments  list[list[str]]  every guess for each of those words
    speak(message)                  say something; returns immediately

Example ``commands/say.py``::

    speak(" ".join(arguments))
"""

import itertools
import logging
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path

from .errors import ScriptExecutionError

log = logging.getLogger(__name__)

_session_ids = itertools.count()


class ScriptSession:
    """One loaded, not-yet-run command script."""

    def __init__(self, path: Path, spec, module):
        self.path = path
        self._spec = spec
        self._module = module

    @classmethod
    def load(cls, path) -> "ScriptSession":
        path = Path(path)
        name = f"mega_command_{next(_session_ids)}"
        spec = spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise ScriptExecutionError(path, "not a loadable Python file")
        return cls(path, spec, module_from_spec(spec))

    def bind(self, **api) -> None:
        for name, value in api.items():
            setattr(self._module, name, value)

    @property
    def namespace(self) -> dict:
        return vars(self._module)

    def run(self) -> None:
        log.info("Running command script %s", self.path)
        try:
            self._spec.loader.exec_module(self._module)
        except Exception as exc:
            raise ScriptExecutionError(self.path, f"{type(exc).__name__}: {exc}") from exc
