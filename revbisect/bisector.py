# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
The bisection driver: select the revisions to test, run the test command
on them and feed the verdicts to a revision-state backend until the first
bad revision is found.
"""

import time
from collections import namedtuple

from mozlog import get_proxy_logger

from revbisect.backends import Continue, SelfManagedBackend
from revbisect.errors import BackendError, InvalidBracket, RevBisectError, SessionConflict
from revbisect.history import BisectionHistory
from revbisect.progress import ProgressBar
from revbisect.test_runner import Verdict

LOG = get_proxy_logger("Bisector")


def compute_budget(count):
    """
    Maximum number of steps needed to bisect *count* revisions, that is
    ceil(log2(count)).
    """
    if count <= 1:
        return 0
    return (count - 1).bit_length()


def compute_steps_left(candidates):
    """
    Number of steps still needed when *candidates* revisions may be the
    first bad one.
    """
    return compute_budget(candidates)


BisectionResult = namedtuple(
    "BisectionResult", "status, revision, iterations, budget, error, history"
)


class BisectorHandler(object):
    """
    React to events of a :class:`Bisector`. This is intended to be subclassed.

    :param ensure_good_and_bad: if True, the oldest and newest revisions are
                                tested before the bisection starts, to make
                                sure they really are good and bad.
    """

    def __init__(self, ensure_good_and_bad=False):
        self.ensure_good_and_bad = ensure_good_and_bad
        self.revisions = None
        self.budget = 0
        self.good_revision = None
        self.bad_revision = None
        self.result = None

    def initialize(self, revisions, budget):
        """
        Called once the revision sequence is known, before the session starts.
        """
        self.revisions = revisions
        self.budget = budget
        if len(revisions) > 1:
            self.good_revision = revisions.oldest
        self.bad_revision = revisions.newest

    def testing(self, iteration, revision):
        """
        Called before each bisection step, *iteration* starts at 1.
        """

    def build_good(self, revision):
        """
        Called when a tested revision is good.
        """
        self.good_revision = revision

    def build_bad(self, revision):
        """
        Called when a tested revision is bad.
        """
        self.bad_revision = revision

    def finished(self, result):
        """
        Called with the :data:`BisectionResult` once the session is ended.
        """
        self.result = result

    def user_exit(self):
        """
        Called when the bisection is interrupted, once the session is ended.
        """


class ConsoleHandler(BisectorHandler):
    """
    A handler that reports the bisection on the terminal, with a progress
    bar during the bisection steps.
    """

    def __init__(self, ensure_good_and_bad=False, show_progress=True, output=None):
        BisectorHandler.__init__(self, ensure_good_and_bad=ensure_good_and_bad)
        self.show_progress = show_progress
        self.output = output
        self.progress = None

    def initialize(self, revisions, budget):
        BisectorHandler.initialize(self, revisions, budget)
        LOG.info(
            "Bisecting %d revisions from %s to %s"
            % (len(revisions), revisions.oldest.short_identifier, revisions.newest.short_identifier)
        )
        LOG.info("Max iterations: %d" % budget)

    def testing(self, iteration, revision):
        if self.show_progress:
            if self.progress is None:
                self.progress = ProgressBar(self.budget, output=self.output)
                self.progress.start()
            # steps already done
            self.progress.update(iteration - 1)
        LOG.debug("Step %d/%d: testing %s" % (iteration, self.budget, revision.short_identifier))

    def _print_progress(self, previous):
        good, bad = self.good_revision, self.bad_revision
        if good is None or good.position is None or bad.position is None:
            return
        # without the progress bar this is the only feedback the user gets
        log = LOG.debug if self.progress is not None else LOG.info
        candidates = bad.position - good.position
        log(
            "Narrowed regression window from [%s, %s] to [%s, %s] (%d revisions)"
            " (~%d steps left)"
            % (
                previous[0].short_identifier,
                previous[1].short_identifier,
                good.short_identifier,
                bad.short_identifier,
                candidates + 1,
                compute_steps_left(candidates),
            )
        )

    def build_good(self, revision):
        previous = (self.good_revision, self.bad_revision)
        BisectorHandler.build_good(self, revision)
        self._print_progress(previous)

    def build_bad(self, revision):
        previous = (self.good_revision, self.bad_revision)
        BisectorHandler.build_bad(self, revision)
        self._print_progress(previous)

    def _finish_progress(self, message, position=None):
        if self.progress is not None:
            if position is not None:
                self.progress.position = position
            self.progress.finish(message)
            self.progress = None

    def finished(self, result):
        BisectorHandler.finished(self, result)
        if result.status == Bisection.FOUND:
            self._finish_progress("Found! %s" % result.revision.identifier, result.iterations)
            revision = result.revision
            LOG.info(
                "First bad revision: %s%s, found in %d steps."
                % (
                    revision.identifier,
                    " (%s)" % revision.message if revision.message else "",
                    result.iterations,
                )
            )
        elif result.status == Bisection.EXHAUSTED:
            self._finish_progress("Exhausted.", result.iterations)
            LOG.error(
                "Bisection failed (exhausted): no first bad revision found after %d steps."
                % result.iterations
            )
        else:
            self._finish_progress("Failed.", result.iterations)
            LOG.error("Bisection failed (%s): %s" % (result.error.kind, result.error))

    def user_exit(self):
        self._finish_progress("Interrupted.")
        if self.good_revision is not None:
            LOG.info("Newest known good revision: %s" % self.good_revision.identifier)
        if self.bad_revision is not None:
            LOG.info("Oldest known bad revision: %s" % self.bad_revision.identifier)


class Bisection(object):
    """
    The state of one bisection run.

    The bracket is [lower, upper]: lower is known good, upper is known (or
    assumed) bad. Each step tests a candidate strictly inside the bracket.
    """

    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    FOUND = "found"
    EXHAUSTED = "exhausted"
    ERRORED = "errored"

    def __init__(self, handler, revisions, backend, test_runner, workspace):
        self.handler = handler
        self.revisions = revisions
        self.backend = backend
        self.test_runner = test_runner
        self.workspace = workspace
        self.history = BisectionHistory()
        self.status = self.IDLE
        self.lower = None
        self.upper = None
        self.candidate = None
        self.iterations = 0
        self.budget = compute_budget(len(revisions))

    def start_session(self):
        """
        Start the backend session. A session left active by a previous run
        is reset once.
        """
        self.status = self.INITIALIZING
        try:
            self.backend.start_session()
        except SessionConflict as exc:
            LOG.warning("%s Resetting it." % exc)
            self.backend.end_session()
            self.backend.start_session()

    def evaluate(self, revision):
        start = time.time()
        verdict = self.test_runner.evaluate(revision, self.workspace)
        self.history.add(revision, verdict, time.time() - start)
        return verdict

    def ensure_good_and_bad(self):
        oldest, newest = self.revisions.oldest, self.revisions.newest
        LOG.info(
            "Testing oldest and newest revisions to ensure that they are really good and bad..."
        )
        if len(self.revisions) > 1:
            self.workspace.materialize(oldest)
            if self.evaluate(oldest) != Verdict.GOOD:
                raise InvalidBracket(
                    "Oldest revision %s was expected to be good! The defect"
                    " seems to predate the history." % oldest.short_identifier
                )
        self.workspace.materialize(newest)
        if self.evaluate(newest) != Verdict.BAD:
            raise InvalidBracket(
                "Newest revision %s was expected to be bad! The test command"
                " does not fail on this history." % newest.short_identifier
            )
        LOG.info("Oldest and newest revisions are correct. Let's continue the bisection.")

    def check_candidate(self, candidate):
        """
        Make sure the candidate chosen by the backend is strictly inside the
        bracket.
        """
        if candidate.position is None:
            # not in the first-parent chain, we can not compare positions
            return
        lower = self.lower.position if self.lower is not None else -1
        if not lower < candidate.position < self.upper.position:
            raise BackendError(
                "The backend selected %s, which is outside of the bracket [%s, %s]."
                % (
                    candidate.short_identifier,
                    self.lower.short_identifier if self.lower is not None else "-",
                    self.upper.short_identifier,
                )
            )

    def handle_verdict(self, revision, verdict):
        if verdict == Verdict.GOOD:
            if revision.position is not None:
                self.lower = revision
            self.handler.build_good(revision)
        else:
            if revision.position is not None:
                self.upper = revision
            self.handler.build_bad(revision)

    def _result(self, status, revision=None, error=None):
        self.status = status
        self.candidate = None
        return BisectionResult(status, revision, self.iterations, self.budget, error, self.history)

    def _converged(self, revision):
        verdict = self.history.verdict_of(revision)
        if verdict is None:
            # the newest revision was only assumed bad, it has to be tested
            # before being reported.
            if self.iterations >= self.budget:
                LOG.debug("No step left to check %s." % revision.short_identifier)
                return self._result(self.EXHAUSTED)
            self.iterations += 1
            self.handler.testing(self.iterations, revision)
            self.workspace.materialize(revision)
            verdict = self.evaluate(revision)
            if verdict != Verdict.BAD:
                LOG.debug("%s is good, there is no bad revision." % revision.short_identifier)
                return self._result(self.EXHAUSTED)
        elif verdict != Verdict.BAD:
            raise BackendError(
                "The backend converged on %s, which was tested good." % revision.short_identifier
            )
        return self._result(self.FOUND, revision)

    def _search(self):
        if self.handler.ensure_good_and_bad:
            self.ensure_good_and_bad()
        self.status = self.RUNNING
        self.upper = self.revisions.newest
        if len(self.revisions) == 1:
            # nothing to narrow, the only revision still has to be bad
            return self._converged(self.upper)

        result = self.backend.record_verdict(Verdict.BAD, self.upper)
        if isinstance(result, Continue):
            self.lower = self.revisions.oldest
            result = self.backend.record_verdict(Verdict.GOOD, self.lower)

        while isinstance(result, Continue):
            if self.iterations >= self.budget:
                return self._result(self.EXHAUSTED)
            self.candidate = result.candidate or self.backend.current_head()
            self.check_candidate(self.candidate)
            self.iterations += 1
            self.handler.testing(self.iterations, self.candidate)
            verdict = self.evaluate(self.candidate)
            result = self.backend.record_verdict(verdict)
            self.handle_verdict(self.candidate, verdict)
        return self._converged(result.revision)

    def run(self):
        """
        Run the bisection. The session must have been started.

        Errors from the test runner or the backend end the bisection
        with the ERRORED status.
        """
        try:
            return self._search()
        except RevBisectError as exc:
            LOG.debug("Bisection error: %s" % exc)
            return self._result(self.ERRORED, error=exc)


class Bisector(object):
    """
    Handle the logic of the bisection process, and report events to a given
    :class:`BisectorHandler`.

    :param history: gives the revision sequence
                    (see :class:`revbisect.revisions.GitHistory`)
    :param test_runner: a :class:`revbisect.test_runner.TestRunner`
    :param workspace: a :class:`revbisect.workspace.Workspace`
    :param backend_class: the revision-state backend class, instantiated
                          with the workspace and the revision sequence
    """

    def __init__(self, history, test_runner, workspace, backend_class=SelfManagedBackend):
        self.history = history
        self.test_runner = test_runner
        self.workspace = workspace
        self.backend_class = backend_class

    def bisect(self, handler):
        revisions = self.history.sequence()
        backend = self.backend_class(self.workspace, revisions)
        return self._bisect(handler, revisions, backend)

    def _bisect(self, handler, revisions, backend):
        bisection = Bisection(handler, revisions, backend, self.test_runner, self.workspace)
        handler.initialize(revisions, bisection.budget)
        bisection.start_session()
        try:
            try:
                result = bisection.run()
            finally:
                # be sure to restore the workspace in all circumstances.
                backend.end_session()
        except KeyboardInterrupt:
            handler.user_exit()
            raise
        handler.finished(result)
        return result
