# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
The workspace is the working tree in which revisions are checked out and
tested.
"""

import os

from mozlog import get_proxy_logger

from revbisect.errors import WorkspaceError
from revbisect.git import Git

LOG = get_proxy_logger("Workspace")


class Workspace(object):
    """
    Explicit handle on the working tree of a git repository.

    Every component that needs a working directory gets it from here, the
    process working directory is never changed.
    """

    def __init__(self, path, git=None):
        path = os.path.abspath(path)
        if not os.path.isdir(path):
            raise WorkspaceError("Directory %s does not exist." % path)
        self.path = path
        self.git = git or Git(path)
        self._reference = None

    def remember_reference(self):
        """
        Save the currently checked out branch (or commit) so that
        :meth:`restore` can come back to it.
        """
        self._reference = self.git.current_ref()
        LOG.debug("Saved workspace reference: %s" % self._reference)
        return self._reference

    def restore(self):
        """
        Check out the reference saved by :meth:`remember_reference`.

        Does nothing if no reference was saved, or if it was already restored.
        """
        if self._reference is None:
            return
        reference, self._reference = self._reference, None
        LOG.debug("Restoring workspace to %s" % reference)
        self.git.checkout(reference)

    def materialize(self, revision):
        """
        Check out the given revision (detached HEAD).
        """
        LOG.debug("Checking out %s" % revision.short_identifier)
        self.git.checkout(revision.identifier, detach=True)

    def head(self):
        """
        Returns the hash of the checked out commit.
        """
        return self.git.rev_parse("HEAD")
