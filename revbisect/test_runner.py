# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
This module implements a :class:`TestRunner` interface for testing revisions
and a default implementation :class:`CommandTestRunner`.
"""

import os
import subprocess
import time
from abc import ABCMeta, abstractmethod
from enum import Enum

from mozlog import get_proxy_logger

from revbisect.errors import OracleLaunchError

LOG = get_proxy_logger("Test Runner")


class Verdict(Enum):
    GOOD = "good"
    BAD = "bad"

    @classmethod
    def from_exit_code(cls, code):
        """
        0 means good, anything else means bad.
        """
        return cls.GOOD if code == 0 else cls.BAD


class TestRunner(metaclass=ABCMeta):
    """
    Abstract class that allows to test a revision.

    :meth:`evaluate` must be implemented by subclasses.
    """

    # not a test case, despite the name
    __test__ = False

    @abstractmethod
    def evaluate(self, revision, workspace):
        """
        Evaluate the given revision, already checked out in *workspace*.
        Must return a :class:`Verdict`.

        :param revision: a :class:`revbisect.revisions.Revision` instance
        :param workspace: a :class:`revbisect.workspace.Workspace` instance
        """
        raise NotImplementedError


class CommandTestRunner(TestRunner):
    """
    A TestRunner subclass that evaluate revisions given a command.

    The command is run in the workspace directory. Its return code gives
    the verdict: 0 is good, anything else is bad.

    Some variables describing the tested revision are available to the
    command as environment variables:

     - REVBISECT_REVISION (the full hash)
     - REVBISECT_SHORT_REVISION
     - REVBISECT_POSITION (0 for the oldest revision)

    :param command: the program to run
    :param args: the arguments given to the program
    :param process_output: if False (the default), the standard output
                           and error of the command are discarded
    """

    def __init__(self, command, args=(), process_output=False):
        TestRunner.__init__(self)
        self.command = command
        self.args = list(args)
        self.process_output = process_output

    def _env(self, revision):
        env = dict(os.environ)
        env["REVBISECT_REVISION"] = revision.identifier
        env["REVBISECT_SHORT_REVISION"] = revision.short_identifier
        if revision.position is not None:
            env["REVBISECT_POSITION"] = str(revision.position)
        return env

    def run(self, revision, workspace):
        """
        Run the command and return its exit code.

        :raises: :class:`revbisect.errors.OracleLaunchError` if the command
                 can not be started.
        """
        if not self.command:
            raise OracleLaunchError("Unable to run the test command: `Empty command`")
        cmdlist = [self.command] + self.args
        output = None if self.process_output else subprocess.DEVNULL
        LOG.debug("Running test command: `%s`" % " ".join(cmdlist))
        try:
            return subprocess.call(
                cmdlist,
                cwd=workspace.path,
                env=self._env(revision),
                stdout=output,
                stderr=output,
            )
        except OSError as exc:
            raise OracleLaunchError(
                "Unable to run the test command (%s not found or not executable): `%s`"
                % (self.command, exc)
            )

    def evaluate(self, revision, workspace):
        start = time.time()
        retcode = self.run(revision, workspace)
        verdict = Verdict.from_exit_code(retcode)
        LOG.debug(
            "Test command result for %s: %d (revision is %s, %.1fs)"
            % (revision.short_identifier, retcode, verdict.value, time.time() - start)
        )
        return verdict
