# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Revision-state backends keep track of the good and bad revisions during a
bisection session and choose the next revision to test.

Two strategies are available:

 - :class:`SelfManagedBackend` narrows the bracket itself (binary search on
   the positions of the revision sequence);
 - :class:`GitBisectBackend` delegates the bookkeeping to ``git bisect``.
"""

import os
from abc import ABCMeta, abstractmethod
from collections import namedtuple

from mozlog import get_proxy_logger

from revbisect.class_registry import ClassRegistry
from revbisect.errors import BackendError, GitError, SessionConflict
from revbisect.revisions import Revision
from revbisect.test_runner import Verdict

LOG = get_proxy_logger("Backend")

REGISTRY = ClassRegistry("strategy")

# the session is still running; *candidate* is the next revision to test,
# already checked out (None while the bracket is not fully known).
Continue = namedtuple("Continue", "candidate")
# the session converged; *revision* is the first bad revision.
Converged = namedtuple("Converged", "revision")


class BisectBackend(metaclass=ABCMeta):
    """
    Handle the state of a bisection session.

    A session is opened with :meth:`start_session` and must always be closed
    with :meth:`end_session`, which restores the workspace.
    """

    def __init__(self, workspace, revisions):
        self.workspace = workspace
        self.revisions = revisions

    @property
    @abstractmethod
    def is_active(self):
        """True if a session is currently running."""

    @abstractmethod
    def start_session(self):
        """
        Start a new session.

        :raises: :class:`revbisect.errors.SessionConflict` if a session is
                 already active.
        """

    @abstractmethod
    def record_verdict(self, verdict, revision=None):
        """
        Record the verdict of a revision (the current candidate if
        *revision* is None) and return a :data:`Continue` or a
        :data:`Converged` instance.
        """

    @abstractmethod
    def end_session(self):
        """
        End the session and restore the workspace. Calling it when no
        session is active does nothing.
        """

    def current_head(self):
        """
        Returns the :class:`revbisect.revisions.Revision` checked out in the
        workspace.
        """
        return self.revision_for(self.workspace.head())

    def revision_for(self, identifier):
        revision = self.revisions.find(identifier)
        if revision is None:
            # a revision outside of the first-parent chain
            revision = Revision(identifier)
        return revision


@REGISTRY.register("self", "binary search over the revision positions")
class SelfManagedBackend(BisectBackend):
    """
    A backend that narrows the [lower, upper] bracket itself.

    A good verdict moves the lower bound up, a bad verdict moves the upper
    bound down. The next candidate is the mid point of the bracket, rounded
    toward the earlier revision.
    """

    def __init__(self, workspace, revisions):
        BisectBackend.__init__(self, workspace, revisions)
        self._active = False
        self.lower = None
        self.upper = None
        self.candidate = None

    @property
    def is_active(self):
        return self._active

    def start_session(self):
        if self._active:
            raise SessionConflict("A bisection session is already active.")
        self.workspace.remember_reference()
        self._active = True
        self.lower = self.upper = self.candidate = None

    def _position_of(self, revision):
        if revision.position is None or self.revisions.find(revision.identifier) is None:
            raise BackendError(
                "Revision %s is not part of the bisected history." % revision.short_identifier
            )
        return revision.position

    def record_verdict(self, verdict, revision=None):
        if not self._active:
            raise BackendError("No bisection session is active.")
        if revision is None:
            revision = self.candidate
        if revision is None:
            raise BackendError("There is no candidate revision to give a verdict to.")
        position = self._position_of(revision)

        if verdict == Verdict.GOOD:
            if self.upper is not None and position >= self.upper:
                raise BackendError(
                    "Revision %s can not be good: it is not older than the bad revision %s."
                    % (revision.short_identifier, self.revisions[self.upper].short_identifier)
                )
            self.lower = position
        elif verdict == Verdict.BAD:
            if self.lower is not None and position <= self.lower:
                raise BackendError(
                    "Revision %s can not be bad: it is not newer than the good revision %s."
                    % (revision.short_identifier, self.revisions[self.lower].short_identifier)
                )
            self.upper = position
        else:
            raise BackendError("Unknown verdict: %r" % (verdict,))
        LOG.debug("Revision %s marked %s" % (revision.short_identifier, verdict.value))

        if self.lower is None or self.upper is None:
            self.candidate = None
            return Continue(None)
        if self.upper - self.lower <= 1:
            self.candidate = None
            return Converged(self.revisions[self.upper])
        self.candidate = self.revisions[self.revisions.mid_point(self.lower, self.upper)]
        self.workspace.materialize(self.candidate)
        return Continue(self.candidate)

    def end_session(self):
        if not self._active:
            return
        self._active = False
        self.candidate = None
        self.workspace.restore()


@REGISTRY.register("git", "delegate to git bisect")
class GitBisectBackend(BisectBackend):
    """
    A backend that delegates the good/bad bookkeeping and the choice of the
    next candidate to ``git bisect``.

    Convergence is detected from the bisect refs: once no more than one
    commit is reachable from ``refs/bisect/bad`` without being reachable from
    a good revision, ``refs/bisect/bad`` is the first bad commit.
    """

    def __init__(self, workspace, revisions, git=None):
        BisectBackend.__init__(self, workspace, revisions)
        self.git = git or workspace.git

    @property
    def is_active(self):
        return os.path.exists(self.git.git_path("BISECT_START"))

    def start_session(self):
        if self.is_active:
            raise SessionConflict(
                "A git bisect session is already active in %s." % self.git.path
            )
        self.git.run("bisect", "start")

    def _good_refs(self):
        output = self.git.run("for-each-ref", "--format=%(objectname)", "refs/bisect/good-*")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def _bad_ref(self):
        if not self.git.succeeds("rev-parse", "--verify", "--quiet", "refs/bisect/bad"):
            return None
        return self.git.rev_parse("refs/bisect/bad")

    def _session_result(self):
        bad = self._bad_ref()
        goods = self._good_refs()
        if bad is None or not goods:
            return Continue(None)
        remaining = int(self.git.run("rev-list", "--count", bad, "--not", *goods))
        if remaining <= 1:
            return Converged(self.revision_for(bad))
        return Continue(self.current_head())

    def record_verdict(self, verdict, revision=None):
        if verdict not in (Verdict.GOOD, Verdict.BAD):
            raise BackendError("Unknown verdict: %r" % (verdict,))
        args = ["bisect", verdict.value]
        if revision is not None:
            args.append(revision.identifier)
        try:
            self.git.run(*args)
        except GitError as exc:
            raise BackendError("git bisect refused the verdict: %s" % exc)
        return self._session_result()

    def end_session(self):
        if not self.is_active:
            return
        self.git.run("bisect", "reset")
