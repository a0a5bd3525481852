from __future__ import annotations

import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class TinyWorkspace:
    """Fixture payload representing a synthetic workspace under test."""

    root: Path

    def write(self, relative: str, content: str) -> Path:
        """Write ``content`` byte-for-byte so CRLF terminators survive."""
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content.encode("utf-8"))
        return target

    def read(self, relative: str) -> str:
        return (self.root / relative).read_bytes().decode("utf-8")


@pytest.fixture()
def tiny_workspace(tmp_path: Path) -> TinyWorkspace:
    """Create a workspace holding the two files used by the multi-file patch."""
    root = tmp_path / "workspace"
    root.mkdir()
    workspace = TinyWorkspace(root=root)
    workspace.write("a.txt", "1\n2\n")
    workspace.write("b.txt", "x\ny\nz\n")
    return workspace


@pytest.fixture()
def multi_file_patch() -> str:
    return textwrap.dedent(
        """\
        --- a/a.txt
        +++ b/a.txt
        @@ -1,2 +1,3 @@
         1
         2
        +3
        --- a/b.txt
        +++ b/b.txt
        @@ -1,3 +1,2 @@
         x
        -y
         z
        """
    )
