# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
A thin wrapper around the git command line, bound to one directory.
"""

import os
import subprocess

from mozlog import get_proxy_logger

from revbisect.errors import GitError

LOG = get_proxy_logger("Git")


class Git(object):
    """
    Run git commands inside a given directory.

    The directory is always passed explicitly (``git -C``), the process
    working directory is never changed.
    """

    def __init__(self, path, executable="git"):
        self.path = os.path.abspath(path)
        self.executable = executable

    def run(self, *args, **kwargs):
        """
        Run a git command and return its stripped standard output.

        :param check: if True (the default), a non-zero exit code raises a
                      :class:`revbisect.errors.GitError`.
        """
        check = kwargs.pop("check", True)
        assert not kwargs, "unexpected arguments: %s" % ", ".join(kwargs)
        cmd = [self.executable, "-C", self.path] + list(args)
        LOG.debug("Running: %s" % " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
            )
        except OSError as exc:
            raise GitError(cmd, -1, "unable to run %s: %s" % (self.executable, exc))
        if check and proc.returncode != 0:
            raise GitError(cmd, proc.returncode, proc.stderr)
        return proc.stdout.strip()

    def succeeds(self, *args):
        """
        Run a git command and return True if its exit code is 0.
        """
        cmd = [self.executable, "-C", self.path] + list(args)
        LOG.debug("Running: %s" % " ".join(cmd))
        try:
            retcode = subprocess.call(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            raise GitError(cmd, -1, "unable to run %s: %s" % (self.executable, exc))
        return retcode == 0

    def git_path(self, name):
        """
        Returns the absolute path of a file inside the git directory
        (e.g. ``BISECT_START``).
        """
        path = self.run("rev-parse", "--git-path", name)
        if not os.path.isabs(path):
            path = os.path.join(self.path, path)
        return path

    def current_ref(self):
        """
        Returns the checked out branch name, or the commit hash when HEAD
        is detached.
        """
        branch = self.run("rev-parse", "--abbrev-ref", "HEAD")
        if branch == "HEAD":
            return self.rev_parse("HEAD")
        return branch

    def rev_parse(self, ref):
        """
        Returns the full commit hash of a reference.
        """
        return self.run("rev-parse", "--verify", "%s^{commit}" % ref)

    def checkout(self, ref, detach=False):
        args = ["checkout", "--quiet"]
        if detach:
            args.append("--detach")
        args.append(ref)
        self.run(*args)
