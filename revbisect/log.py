# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Logging and terminal output for revbisect.

Log messages and the progress bar share the terminal: the progress bar
registers its line in :data:`LIVE_LINE`, and the log formatter erases that
line before a message and draws it again after.
"""

import re
import sys
import time

import mozinfo
from colorama import Back, Fore, Style
from mozlog.handlers import LogLevelFilter, StreamHandler
from mozlog.structuredlog import StructuredLogger, set_default_logger

ALLOW_COLOR = sys.stdout.isatty()

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


class LiveLine(object):
    """
    The line currently redrawn in place (with carriage returns) on a stream.
    """

    def __init__(self):
        self.stream = None
        self.text = ""

    def show(self, stream, text):
        self.stream = stream
        self.text = text

    def hide(self):
        self.stream = None
        self.text = ""

    def around(self, stream, message):
        """
        Returns *message* wrapped so that, written on *stream*, it appears
        above the live line instead of over it.
        """
        if not self.text or stream is not self.stream:
            return message
        blank = " " * len(ANSI_ESCAPE.sub("", self.text))
        return "\r%s\r%s%s" % (blank, message, self.text)


LIVE_LINE = LiveLine()


class ConsoleFormatter(object):
    """
    Format mozlog records as ``elapsed LEVEL: message`` lines, the elapsed
    time being counted from the creation of the formatter.
    """

    LEVEL_COLORS = {
        "CRITICAL": Fore.RED + Style.BRIGHT,
        "ERROR": Fore.RED + Style.BRIGHT,
        "WARNING": Fore.MAGENTA + Style.BRIGHT,
        "INFO": Style.BRIGHT,
        "DEBUG": Fore.CYAN + Style.BRIGHT,
    }

    def __init__(self, output, allow_color=ALLOW_COLOR):
        self.output = output
        self.allow_color = allow_color
        self.start = time.time() * 1000
        self.time_color = Fore.BLUE
        if mozinfo.os == "win":
            # dark blue is unreadable on the windows console
            self.time_color += Style.BRIGHT

    def elapsed(self, timestamp):
        minutes, seconds = divmod((timestamp - self.start) / 1000, 60)
        return "%2d:%05.2f" % (minutes, seconds)

    def __call__(self, data):
        level = data["level"]
        elapsed = self.elapsed(data["time"])
        if self.allow_color:
            elapsed = self.time_color + elapsed + Style.RESET_ALL
            if level in self.LEVEL_COLORS:
                level = self.LEVEL_COLORS[level] + level + Style.RESET_ALL
        line = "%s %s: %s\n" % (elapsed, level, data["message"])
        return LIVE_LINE.around(self.output, line)


def init_logger(debug=True, allow_color=ALLOW_COLOR, output=None):
    """
    Set up the "revbisect" mozlog logger as the default logger, so that the
    proxy loggers of every module write through it.

    Calling it again replaces the previous handler.
    """
    # sys.stdout is looked up late, colorama may have wrapped it on windows
    output = output or sys.stdout
    logger = StructuredLogger("revbisect")
    for handler in list(logger.handlers):
        logger.remove_handler(handler)
    logger.add_handler(
        LogLevelFilter(
            StreamHandler(output, ConsoleFormatter(output, allow_color=allow_color)),
            "debug" if debug else "info",
        )
    )
    set_default_logger(logger)
    return logger


def _color_codes(enabled):
    codes = {}
    for prefix, group in (("b", Back), ("s", Style), ("f", Fore)):
        for name, value in vars(group).items():
            if not name.startswith("_"):
                codes[prefix + name] = value if enabled else ""
    return codes


COLORS = _color_codes(True)
NO_COLORS = _color_codes(False)


def colorize(template, allow_color=ALLOW_COLOR):
    """
    Fill the color placeholders of *template*.

    Placeholders are colorama names with a prefix telling the group:
    ``b`` for Back, ``s`` for Style and ``f`` for Fore, e.g.
    ``"{fGREEN}found{sRESET_ALL}"``. They are removed when *allow_color* is
    False.

    The result is often used as a %-format string, so do not put the values
    in *template* itself: they may contain braces.
    """
    return template.format(**(COLORS if allow_color else NO_COLORS))
