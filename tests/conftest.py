import logging
import os

import pytest

from dirsize.models import Node


def write_file(path, size):
    with open(path, "wb") as f:
        f.truncate(size)
    return str(path)


@pytest.fixture
def sample_dir(tmp_path):
    """root/{a.txt 2,000,000; b.txt 500,000; sub/c.txt 3,000,000}"""
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    write_file(root / "a.txt", 2_000_000)
    write_file(root / "b.txt", 500_000)
    write_file(root / "sub" / "c.txt", 3_000_000)
    return str(root)


@pytest.fixture(autouse=True)
def reset_dirsize_logger():
    yield
    base = logging.getLogger("dirsize")
    for h in list(base.handlers):
        base.removeHandler(h)
        h.close()
    base.propagate = True
    base.setLevel(logging.NOTSET)


def f(path, size):
    return Node(path, size, True, None)


def d(path, *children):
    kids = list(children)
    return Node(path, sum(c.size for c in kids), False, kids)


def leaf_dir(path):
    return Node(path, 0, False, None)


def j(*parts):
    return os.path.join(*parts)
