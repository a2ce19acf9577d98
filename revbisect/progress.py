# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
A live-updating progress line for the bisection steps.
"""

import sys
import time

from mozlog import get_proxy_logger

from revbisect.log import ALLOW_COLOR, LIVE_LINE, colorize

LOG = get_proxy_logger("Progress")


def format_elapsed(seconds):
    """Format a number of seconds to HH:MM:SS."""
    minutes, seconds = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return "%02d:%02d:%02d" % (hours, minutes, seconds)


class ProgressBar(object):
    """
    Render the progress of the bisection on a single terminal line::

        [00:00:12] [##########>---------] 2/4 (eta 12.0s)

    The line is rewritten in place (using a carriage return) on each
    :meth:`update`, and terminated by :meth:`finish`.

    Writing errors on the output disable the bar: the progress display
    must never interrupt a bisection.
    """

    def __init__(self, total, output=None, width=30, allow_color=ALLOW_COLOR, clock=time.time):
        self.total = max(int(total), 0)
        self.output = output
        self.width = width
        self.allow_color = allow_color
        self.clock = clock
        self.position = 0
        self.start_time = None
        self.enabled = True

    def start(self):
        self.start_time = self.clock()
        self._write(self.render())

    def elapsed(self):
        if self.start_time is None:
            return 0.0
        return self.clock() - self.start_time

    def eta(self):
        """
        Estimated remaining seconds, or None while no step is done.
        """
        if self.position <= 0:
            return None
        per_step = self.elapsed() / self.position
        return per_step * max(self.total - self.position, 0)

    def render(self):
        if self.total:
            filled = int(self.width * min(self.position, self.total) / self.total)
        else:
            filled = self.width
        if filled >= self.width:
            bar = "#" * self.width
        else:
            bar = "#" * filled + ">" + "-" * (self.width - filled - 1)
        eta = self.eta()
        eta = "?" if eta is None else "%.1fs" % eta
        template = "{fGREEN}[%s]{sRESET_ALL} [{fCYAN}%s{sRESET_ALL}] %d/%d (eta %s)"
        return colorize(template, allow_color=self.allow_color) % (
            format_elapsed(self.elapsed()),
            bar,
            self.position,
            self.total,
            eta,
        )

    def update(self, position):
        self.position = position
        self._write(self.render())

    def finish(self, message=""):
        line = self.render()
        if message:
            line += " " + message
        self._write(line, final=True)
        self.enabled = False

    def _write(self, line, final=False):
        if not self.enabled:
            return
        output = self.output or sys.stdout
        try:
            output.write("\r" + line + ("\n" if final else ""))
            output.flush()
        except (IOError, OSError, ValueError) as exc:
            self.enabled = False
            LIVE_LINE.hide()
            LOG.debug("Progress display disabled: %s" % exc)
            return
        if final:
            LIVE_LINE.hide()
        else:
            # log messages are written above this line from now on
            LIVE_LINE.show(output, line)
