#!/usr/bin/env python3
"""
Mega — entry point
------------------
Flow: Mic → VAD → STT ("mega"?) → "ready" → VAD → STT (N-best)
      → command tree → command script → TTS → Speaker

Run directly:   python mega_assistant.py
Installed:      mega

Configuration:
  Copy .env.example → .env and fill in your values.
  All settings can also be set as regular environment variables (env vars
  override .env values).

Commands:
  Every directory under COMMANDS_DIR (default ./commands) is one spoken word;
  a file <word>.py is a command. "mega … open the door" runs
  commands/open/the/door.py, or commands/open.py with arguments ["the", "door"].
"""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the current working directory before config is read.
# If .env does not exist this is a no-op.
load_dotenv(dotenv_path=Path.cwd() / ".env")

from mega import config
from mega.daemon import MegaAssistant
from mega.errors import MegaError


def _setup_logging() -> None:
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers: list = [logging.StreamHandler(sys.stdout)]
    try:
        handlers.append(logging.FileHandler(config.LOG_FILE))
    except PermissionError:
        pass  # no write access to log file; stdout only
    logging.basicConfig(level=config.LOG_LEVEL, format=fmt, handlers=handlers)


def main() -> int:
    _setup_logging()
    log = logging.getLogger("mega")
    try:
        MegaAssistant().run()
    except MegaError as exc:
        log.critical("Mega exited with an error: %s", exc, exc_info=True)
        return 1
    log.info("Mega successfully exited.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
