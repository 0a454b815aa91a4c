#!/usr/bin/env python3
import argparse
import email
import email.policy
import email.utils
import logging
import mailbox
import os
from typing import Dict, List, Optional, Tuple

import pygit2
from tqdm import tqdm

import settings
from jwz_threading import RawTuple
from render import scan_lines
from thread_state import ThreadState

logger = logging.getLogger(__name__)

Scanned = List[Tuple[int, "EmailMessage"]]


class EmailMessage:
    def __init__(self, raw_email: bytes):
        self._email = email.message_from_bytes(raw_email, policy=email.policy.default)

    def _header(self, name: str) -> str:
        value = self._email.get(name)
        return "" if value is None else str(value).strip()

    @property
    def message_id(self) -> str:
        return self._header("Message-ID")

    @property
    def references(self) -> str:
        return self._header("References")

    @property
    def in_reply_to(self) -> str:
        return self._header("In-Reply-To")

    @property
    def subject(self) -> str:
        return self._header("Subject")

    @property
    def from_name(self) -> str:
        name, addr = email.utils.parseaddr(self._header("From"))
        return name if name else addr

    def as_tuple(self, row: int) -> RawTuple:
        return (row, self.message_id, self.references, self.in_reply_to, self.subject)

    @classmethod
    def from_oid(cls, git_oid, repo):
        blob = repo[git_oid]
        return cls(blob.data)


def _parse(row: int, load) -> Optional[EmailMessage]:
    try:
        msg = load()
        # Header values are decoded lazily; fail here rather than mid-thread
        msg.as_tuple(row)
        return msg
    except Exception as e:
        logger.warning(f"Skipping unreadable message at row {row}: {e}")
        return None


def read_mbox(path: str) -> Scanned:
    """Messages of an mbox file, numbered from 1 in file order"""
    if not os.path.isfile(path):
        raise FileNotFoundError(path)

    box = mailbox.mbox(path, create=False)
    try:
        scanned = []
        for row, key in enumerate(tqdm(box.keys(), disable=None), start=1):
            msg = _parse(row, lambda: EmailMessage(box.get_bytes(key)))
            if msg is not None:
                scanned.append((row, msg))
    finally:
        box.close()
    return scanned


def _first_blob(repo, commit_id):
    commit = repo[commit_id]
    for entry in commit.tree:
        if entry.type == pygit2.GIT_OBJECT_BLOB:
            return EmailMessage.from_oid(entry.id, repo)
    raise ValueError("No message in commit %s" % commit_id)


def read_git_repo(repo_path: str, branch: str = "master") -> Scanned:
    """Messages of a public-inbox style repository, one per commit, oldest first"""
    repo = pygit2.Repository(repo_path)
    start_commit = repo.references["refs/heads/%s" % branch].peel(pygit2.Commit)
    walker = repo.walk(
        start_commit.id, pygit2.GIT_SORT_TOPOLOGICAL | pygit2.GIT_SORT_REVERSE
    )

    scanned = []
    for row, commit in enumerate(tqdm(list(walker), disable=None), start=1):
        msg = _parse(row, lambda: _first_blob(repo, commit.id))
        if msg is not None:
            scanned.append((row, msg))
    return scanned


def raw_tuples(scanned: Scanned) -> List[RawTuple]:
    return [msg.as_tuple(row) for row, msg in scanned]


def sender_labels(scanned: Scanned) -> Dict[int, str]:
    return {row: msg.from_name for row, msg in scanned}


def sync_folder(state: ThreadState, scanned: Scanned):
    """Bring state up to date with a fresh scan of its folder.

    Rows that are new get threaded incrementally. If a known row vanished
    or now holds a different message the folder is rethreaded in full.
    """
    known = state.rows()
    current = {row: msg.message_id for row, msg in scanned}
    changed = [row for row in known if current.get(row) != state.index_id[row]]
    if changed:
        logger.info(f"Rethreading folder: {len(changed)} rows changed")
        state.thread(raw_tuples(scanned))
        return state.roots

    # Rows without a Message-ID are never indexed, so they would look new forever
    new = [(row, msg) for row, msg in scanned if row not in known and msg.message_id]
    if new:
        state.update(raw_tuples(new))
        logger.info(f"Threaded {len(new)} new messages")
    return state.roots


def main():
    parser = argparse.ArgumentParser(description="Print the threads of a mail folder")
    parser.add_argument("path", help="mbox file, or git repository with --git")
    parser.add_argument("--git", action="store_true", help="Read a public-inbox style git repository")
    parser.add_argument("--branch", default="master", help="Branch to read with --git")
    parser.add_argument(
        "--merge-empty-subjects",
        action="store_true",
        default=None,
        help="Group threads that have no subject at all",
    )

    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, settings.LOGLEVEL, logging.INFO))

    if args.git:
        scanned = read_git_repo(args.path, args.branch)
    else:
        scanned = read_mbox(args.path)

    state = ThreadState(merge_empty_subjects=args.merge_empty_subjects)
    roots = state.thread(raw_tuples(scanned))
    logger.info(f"Threaded {len(scanned)} messages into {len(roots)} threads")

    for line in scan_lines(state, labels=sender_labels(scanned)):
        print(line)


if __name__ == "__main__":
    main()
