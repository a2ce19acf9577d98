import pytest
from mock import Mock

from revbisect.errors import GitError, HistoryUnavailable
from revbisect.git import Git
from revbisect.revisions import FIELD_SEP, GitHistory, Revision, RevisionSequence


def test_revision():
    revision = Revision("0123456789abcdef0123456789abcdef01234567", 2, "2020-01-01", "fix it")
    assert revision.short_identifier == "0123456789ab"
    assert str(revision) == "0123456789abcdef0123456789abcdef01234567"
    assert revision.position == 2
    assert revision.message == "fix it"


def test_revision_defaults():
    revision = Revision("abc")
    assert revision.position is None
    assert revision.date == ""
    assert revision.message == ""


def test_revision_is_immutable():
    revision = Revision("abc", 1)
    with pytest.raises(AttributeError):
        revision.position = 2


class TestRevisionSequence(object):
    def setup_method(self, method):
        self.revisions = RevisionSequence.from_identifiers(["aaa111", "aab222", "bbb333"])

    def test_list_like(self):
        assert len(self.revisions) == 3
        assert self.revisions[1] == Revision("aab222", 1)
        assert [r.position for r in self.revisions] == [0, 1, 2]
        assert self.revisions.oldest.identifier == "aaa111"
        assert self.revisions.newest.identifier == "bbb333"

    @pytest.mark.parametrize(
        "identifier,position",
        [("aab222", 1), ("bbb", 2), ("aab", 1), ("aa", None), ("ccc", None)],
    )
    def test_find(self, identifier, position):
        revision = self.revisions.find(identifier)
        if position is None:
            assert revision is None
        else:
            assert revision.position == position

    def test_repr(self):
        assert repr(self.revisions) == "<RevisionSequence ['aaa111', 'aab222', 'bbb333']>"


@pytest.mark.parametrize("lower,upper,mid", [(0, 7, 3), (3, 7, 5), (3, 5, 4), (0, 2, 1), (4, 9, 6)])
def test_mid_point(lower, upper, mid):
    assert RevisionSequence.mid_point(lower, upper) == mid


def test_git_history_parse():
    git = Mock(path="/my/repo")
    git.run.return_value = "\n".join(
        [
            FIELD_SEP.join(["a" * 40, "2020-01-01T10:00:00+01:00", "initial commit"]),
            FIELD_SEP.join(["b" * 40, "2020-01-02T10:00:00+01:00", "a subject {with} braces"]),
            "",
        ]
    )
    history = GitHistory(git)
    revisions = history.sequence()
    assert history.count() == 2
    assert history.oldest_revision() == Revision(
        "a" * 40, 0, "2020-01-01T10:00:00+01:00", "initial commit"
    )
    assert revisions[1].message == "a subject {with} braces"
    # the history is read once
    assert history.sequence() is revisions
    assert git.run.call_count == 1
    args = git.run.call_args[0]
    assert "--first-parent" in args
    assert "--reverse" in args
    assert args[-1] == "HEAD"


def test_git_history_error():
    git = Mock(path="/my/repo")
    git.run.side_effect = GitError(["git", "log"], 128, "not a git repository")
    with pytest.raises(HistoryUnavailable) as excinfo:
        GitHistory(git).sequence()
    assert "not a git repository" in str(excinfo.value)


def test_git_history_empty():
    git = Mock(path="/my/repo")
    git.run.return_value = ""
    with pytest.raises(HistoryUnavailable):
        GitHistory(git).sequence()


def test_git_history_real_repository(git_repo):
    repo, hashes = git_repo
    revisions = GitHistory(Git(repo.path)).sequence()
    assert [r.identifier for r in revisions] == hashes
    assert revisions[3].message == "set value to 3"
    assert revisions[3].position == 3


def test_git_history_first_parent_only(git_repo):
    repo, hashes = git_repo
    repo.git("checkout", "-q", "-b", "feature", hashes[5])
    side = repo.commit(100, filename="other")
    repo.git("checkout", "-q", "main")
    repo.git("merge", "-q", "--no-ff", "-m", "merge feature", "feature")
    revisions = GitHistory(Git(repo.path)).sequence()
    assert len(revisions) == 9
    assert revisions.find(side) is None
    assert revisions.newest.message == "merge feature"


def test_git_history_not_a_repository(tmpdir):
    with pytest.raises(HistoryUnavailable):
        GitHistory(Git(str(tmpdir))).sequence()
