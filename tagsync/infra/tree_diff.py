"""
Recursive content diff of two directory trees.

Output follows ``diff -r`` conventions ("Only in ...", unified diffs for
changed text files, "Binary files ... differ" otherwise). An empty string
means the trees are identical once excluded names are ignored.
"""

import difflib
import filecmp
import os
import stat
from typing import Iterable, List

from ..exit_codes import DelegatedToolFailure
from .directory_sync import EXCLUDE_PATTERNS, is_excluded


def _read_text(path: str):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.readlines()
    except UnicodeDecodeError:
        return None


def _kind(path: str) -> str:
    if os.path.islink(path):
        return 'symlink'
    if os.path.isdir(path):
        return 'directory'
    return 'file'


def _diff_files(left: str, right: str) -> List[str]:
    if filecmp.cmp(left, right, shallow=False):
        left_mode = stat.S_IMODE(os.stat(left).st_mode) & 0o111
        right_mode = stat.S_IMODE(os.stat(right).st_mode) & 0o111
        if left_mode != right_mode:
            return [f"Mode differs: {left} ({oct(left_mode)}) {right} ({oct(right_mode)})\n"]
        return []

    left_lines = _read_text(left)
    right_lines = _read_text(right)
    if left_lines is None or right_lines is None:
        return [f"Binary files {left} and {right} differ\n"]

    lines = [f"diff -r {left} {right}\n"]
    for line in difflib.unified_diff(left_lines, right_lines, fromfile=left, tofile=right):
        lines.append(line if line.endswith('\n') else line + '\n')
    return lines


def _diff_dirs(left: str, right: str, exclude: List[str]) -> List[str]:
    left_names = {n for n in os.listdir(left) if not is_excluded(n, exclude)}
    right_names = {n for n in os.listdir(right) if not is_excluded(n, exclude)}

    lines: List[str] = []
    for name in sorted(left_names | right_names):
        if name not in right_names:
            lines.append(f"Only in {left}: {name}\n")
            continue
        if name not in left_names:
            lines.append(f"Only in {right}: {name}\n")
            continue

        lpath = os.path.join(left, name)
        rpath = os.path.join(right, name)
        lkind, rkind = _kind(lpath), _kind(rpath)

        if lkind != rkind:
            lines.append(f"File {lpath} is a {lkind} while file {rpath} is a {rkind}\n")
        elif lkind == 'symlink':
            if os.readlink(lpath) != os.readlink(rpath):
                lines.append(f"Symbolic links {lpath} and {rpath} differ\n")
        elif lkind == 'directory':
            lines.extend(_diff_dirs(lpath, rpath, exclude))
        else:
            lines.extend(_diff_files(lpath, rpath))

    return lines


def diff_trees(left: str, right: str, exclude: Iterable[str] = EXCLUDE_PATTERNS) -> str:
    """
    Diff two directory trees recursively.

    Args:
        left: First tree (the monorepo subtree)
        right: Second tree (the mirror working copy)
        exclude: fnmatch patterns for names ignored at every level

    Returns:
        Diff text, empty when the trees match

    Raises:
        DelegatedToolFailure: If a file or directory cannot be read
    """
    exclude = list(exclude)
    for path in (left, right):
        if not os.path.isdir(path):
            return f"Missing directory: {path}\n"
    try:
        return ''.join(_diff_dirs(left, right, exclude))
    except OSError as e:
        raise DelegatedToolFailure(f"Comparing {left} with {right} failed: {e}") from e
