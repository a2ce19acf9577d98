# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Definition of revbisect related exceptions.
"""


class RevBisectError(Exception):
    """Base class for revbisect errors."""

    #: short name of the error, used in the final failure message
    kind = "error"


class HistoryUnavailable(RevBisectError):
    """
    Raised when the revision history can not be read (not a repository,
    or a repository without any revision).
    """

    kind = "history unavailable"


class SessionConflict(RevBisectError):
    """
    Raised when a bisection session is started while another one is
    still active.
    """

    kind = "session conflict"


class OracleLaunchError(RevBisectError):
    """
    Raised when the user test command can not be spawned.
    """

    kind = "test command error"


class InvalidBracket(RevBisectError):
    """
    Raised when the oldest revision is not good or the newest revision is
    not bad, so there is nothing to bisect.
    """

    kind = "invalid bracket"


class BackendError(RevBisectError):
    """
    Raised on an unexpected response of a revision-state backend.
    """

    kind = "backend error"


class GitError(BackendError):
    """
    Raised when a git command fails.
    """

    kind = "git error"

    def __init__(self, command, returncode, stderr=""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        msg = "`%s` failed with exit code %d" % (" ".join(command), returncode)
        if stderr:
            # the message always fits on one line
            msg += ": %s" % " ".join(line.strip() for line in stderr.splitlines() if line.strip())
        BackendError.__init__(self, msg)


class WorkspaceError(RevBisectError):
    """
    Raised when the workspace directory can not be used.
    """

    kind = "workspace error"
