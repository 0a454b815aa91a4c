#!/usr/bin/env python3

import os


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


# Whether roots without any subject may be grouped together
MERGE_EMPTY_SUBJECTS = _flag("THREADS_MERGE_EMPTY_SUBJECTS")

LOGLEVEL = os.environ.get("THREADS_LOGLEVEL", "INFO").upper().strip()

# Web view
MBOX_DIR = os.environ.get("MBOX_DIR", os.path.expanduser("~/Mail"))
PORT = int(os.environ.get("PORT", 5000))
