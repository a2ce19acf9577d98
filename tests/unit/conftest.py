import io
import os
import shutil
import subprocess
import sys

import pytest

from revbisect import log
from revbisect.revisions import Revision, RevisionSequence
from revbisect.test_runner import TestRunner, Verdict


@pytest.fixture(autouse=True)
def log_output():
    """
    Every module logs through mozlog proxy loggers, a default logger must
    exist. Returns the stream the logs are written to.
    """
    stream = io.StringIO()
    log.LIVE_LINE.hide()
    log.init_logger(debug=True, allow_color=False, output=stream)
    return stream


def make_revisions(count):
    return RevisionSequence(
        Revision(
            "%040x" % (i + 1), i, "2020-01-%02dT00:00:00+00:00" % (i % 28 + 1), "commit %d" % i
        )
        for i in range(count)
    )


@pytest.fixture
def revisions_of():
    return make_revisions


class FakeWorkspace(object):
    """
    A workspace that only records what is checked out.
    """

    def __init__(self, revisions=None, path="/fake/repo"):
        self.path = path
        self.revisions = revisions
        self.current = revisions.newest if revisions is not None else None
        self.materialized = []
        self.remembered = 0
        self.restored = 0

    def remember_reference(self):
        self.remembered += 1
        return "master"

    def restore(self):
        self.restored += 1

    def materialize(self, revision):
        self.materialized.append(revision)
        self.current = revision

    def head(self):
        return self.current.identifier


@pytest.fixture
def fake_workspace():
    return FakeWorkspace


class ScriptedTestRunner(TestRunner):
    """
    A test runner that gives BAD for every revision at or after the first
    bad position (all revisions are GOOD if first_bad is None).
    """

    def __init__(self, first_bad=None):
        self.first_bad = first_bad
        self.tested = []

    def evaluate(self, revision, workspace):
        self.tested.append(revision)
        if self.first_bad is not None and revision.position >= self.first_bad:
            return Verdict.BAD
        return Verdict.GOOD


@pytest.fixture
def scripted_runner():
    return ScriptedTestRunner


class GitRepo(object):
    """
    A real git repository in a temporary directory.
    """

    def __init__(self, path):
        self.path = path
        os.makedirs(path)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "revbisect tests")
        self.git("config", "user.email", "tests@revbisect.invalid")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args):
        return subprocess.check_output(
            ["git", "-C", self.path] + list(args),
            stderr=subprocess.STDOUT,
            universal_newlines=True,
        ).strip()

    def commit(self, value, filename="value"):
        """
        Commit a file (named "value" by default) containing the given number.
        """
        with open(os.path.join(self.path, filename), "w") as f:
            f.write("%d\n" % value)
        self.git("add", filename)
        self.git("commit", "-q", "-m", "set value to %d" % value)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def single_commit_repo(tmpdir):
    """
    A git repository with a single commit, of value 0.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not available")
    repo = GitRepo(str(tmpdir.join("repo")))
    repo.commit(0)
    return repo


@pytest.fixture
def git_repo(tmpdir):
    """
    A git repository with 8 commits, the value of the n-th commit is n.
    Returns the repository and the list of commit hashes (oldest first).
    """
    if shutil.which("git") is None:
        pytest.skip("git is not available")
    repo = GitRepo(str(tmpdir.join("repo")))
    return repo, [repo.commit(i) for i in range(8)]


def _value_command(threshold):
    return [
        sys.executable,
        "-c",
        "import sys; sys.exit(int(open('value').read()) >= %d)" % threshold,
    ]


@pytest.fixture
def value_command():
    """
    Build a test command that fails when the value file is >= threshold.
    """
    return _value_command
