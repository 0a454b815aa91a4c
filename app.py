#!/usr/bin/env python3

import logging
import os
import threading
from flask import Flask, abort, render_template
from flask_httpauth import HTTPBasicAuth

import settings
from folder_scan import read_mbox, sender_labels, sync_folder
from render import scan_lines
from thread_state import ThreadState

logging.basicConfig(level=getattr(logging, settings.LOGLEVEL, logging.INFO))

app = Flask(__name__)
auth = HTTPBasicAuth()

# One threading state per folder, reused whenever that folder is shown again
folder_states = {}
# Threading passes must not interleave
folder_lock = threading.Lock()

@auth.verify_password
def verify_password(username, password):
    if os.environ.get('PASSWORD'):
        return password == os.environ.get('PASSWORD')
    return True  # No auth if PASSWORD not set

def _folder_path(name):
    path = os.path.join(settings.MBOX_DIR, name)
    if name.startswith('.') or not os.path.isfile(path):
        abort(404)
    return path

def with_folder(name, view):
    """Sync the folder and run view(state, labels) before anyone else touches it"""
    path = _folder_path(name)
    scanned = read_mbox(path)
    labels = sender_labels(scanned)
    with folder_lock:
        state = folder_states.get(path)
        if state is None:
            state = folder_states[path] = ThreadState()
        sync_folder(state, scanned)
        return view(state, labels)

@app.route("/")
@auth.login_required
def index():
    folders = []
    if os.path.isdir(settings.MBOX_DIR):
        folders = sorted(
            f for f in os.listdir(settings.MBOX_DIR)
            if not f.startswith('.') and os.path.isfile(os.path.join(settings.MBOX_DIR, f))
        )
    return render_template("index.html", folders=folders)

@app.route("/<name>/")
@auth.login_required
def view_folder(name):
    lines = with_folder(name, lambda state, labels: scan_lines(state, labels=labels))
    return render_template("folder.html", name=name, lines=lines)

@app.route("/<name>/<int:row>/")
@auth.login_required
def view_subthread(name, row):
    def subthread(state, labels):
        rows = set(state.subthread_rows(row))
        lines = [line for line in scan_lines(state, labels=labels) if line.row in rows]
        return lines, state.parent_row(row)

    lines, parent_row = with_folder(name, subthread)
    if not lines:
        return f"Could not find row {row} in {name}", 404

    return render_template(
        "folder.html",
        name=name,
        lines=lines,
        parent_row=parent_row,
    )

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=settings.PORT)
