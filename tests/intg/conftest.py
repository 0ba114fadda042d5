from pathlib import Path
from typing import Dict

import pytest
from git import Actor, Repo

ACTOR = Actor("Pipeline Bot", "pipeline@example.com")


def commit_files(repo: Repo, files: Dict[str, str], message: str):
    """Write files into the working tree and commit them."""
    root = Path(repo.working_tree_dir)
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    repo.index.add(list(files))
    return repo.index.commit(message, author=ACTOR, committer=ACTOR)


@pytest.fixture
def upstream(tmp_path) -> Repo:
    """Remote repository with v1.0 tagged; clones are taken before v2.0 exists."""
    repo = Repo.init(tmp_path / "upstream")
    commit_files(repo, {"b.txt": "one\n", "c.txt": "unchanged\n"}, "Initial release")
    repo.create_tag("v1.0")
    return repo


@pytest.fixture
def workspace(tmp_path, upstream) -> Repo:
    """CI checkout cloned from upstream, then left behind by a new release."""
    clone = Repo.clone_from(upstream.working_tree_dir, tmp_path / "workspace")

    commit_files(upstream, {"a.txt": "new file\n", "b.txt": "two\n"}, "Second release")
    upstream.create_tag("v2.0")
    upstream.create_head("release")
    return clone
