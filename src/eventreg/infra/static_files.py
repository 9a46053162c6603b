# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

MIME_TYPES = [
    (re.compile(r"\.html$"), "text/html"),
    (re.compile(r"\.jpe?g$"), "image/jpeg"),
    (re.compile(r"\.png$"), "image/png"),
    (re.compile(r"\.gif$"), "image/gif"),
    (re.compile(r"\.svg$"), "image/svg+xml"),
    (re.compile(r"\.pdf$"), "application/pdf"),
    (re.compile(r"\.css$"), "text/css"),
    (re.compile(r"\.js$"), "text/javascript"),
    (re.compile(r"\.json$"), "application/json"),
]

SHELL_TEMPLATE = "/_template.html"


def mime_type_for(path: str) -> str:
    for pattern, mime in MIME_TYPES:
        if pattern.search(path):
            return mime
    return "text/plain"


def page_path_for(request_path: str) -> str:
    """Map a URL path to a file path below the static root."""
    path = request_path or "/"
    if path == "/":
        path = "/index.html"
    if "." not in path:
        path = path + ".html"
    return path


class StaticFileStore:
    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Optional[Path]:
        p = (self.root / path.lstrip("/")).resolve()
        if p != self.root and self.root not in p.parents:
            return None
        return p

    def read_file(self, path: str) -> Optional[bytes]:
        p = self._resolve(path)
        if p is None or not p.is_file():
            return None
        return p.read_bytes()
