# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Entry point for the revbisect command line.
"""

import os
import sys

import colorama
from mozlog import get_proxy_logger

from revbisect.backends import REGISTRY as BACKEND_REGISTRY
from revbisect.bisector import Bisection, Bisector, ConsoleHandler
from revbisect.cli import cli
from revbisect.errors import RevBisectError
from revbisect.revisions import GitHistory
from revbisect.test_runner import CommandTestRunner
from revbisect.workspace import Workspace

LOG = get_proxy_logger("main")


class Application(object):
    """
    Build the objects needed for a bisection from a
    :class:`revbisect.cli.Configuration`, lazily.
    """

    def __init__(self, config):
        self.config = config
        self._workspace = None
        self._history = None
        self._test_runner = None
        self._bisector = None

    @property
    def workspace(self):
        if self._workspace is None:
            self._workspace = Workspace(self.config.options.directory)
        return self._workspace

    @property
    def history(self):
        if self._history is None:
            self._history = GitHistory(self.workspace.git)
        return self._history

    @property
    def test_runner(self):
        if self._test_runner is None:
            self._test_runner = CommandTestRunner(
                self.config.command,
                self.config.command_args,
                process_output=self.config.process_output,
            )
        return self._test_runner

    @property
    def bisector(self):
        if self._bisector is None:
            self._bisector = Bisector(
                self.history,
                self.test_runner,
                self.workspace,
                backend_class=BACKEND_REGISTRY.get(self.config.options.strategy),
            )
        return self._bisector

    def bisect(self):
        """
        Run the bisection and return the exit code of the program.
        """
        handler = ConsoleHandler(
            ensure_good_and_bad=self.config.ensure_good_and_bad,
            show_progress=self.config.show_progress,
        )
        result = self.bisector.bisect(handler)
        if result.status == Bisection.FOUND:
            return 0
        return 1


def main(argv=None):
    """
    main entry point of revbisect command line.
    """
    # terminal color support on windows
    if os.name == "nt":
        colorama.init()

    config = None
    try:
        config = cli(argv=argv)
        app = Application(config)
        sys.exit(app.bisect())
    except KeyboardInterrupt:
        sys.exit("\nInterrupted.")
    except RevBisectError as exc:
        if not config:
            sys.exit("%s: %s" % (exc.kind, exc))
        LOG.error("Bisection failed (%s): %s" % (exc.kind, exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
