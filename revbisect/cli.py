# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
This module parses and checks the command line with :func:`cli` and return a
:class:`Configuration` object that hold information for running the
application.

:func:`cli` is intended to be the only public interface of this module.
"""

import os
from argparse import REMAINDER, SUPPRESS, Action, ArgumentParser

from revbisect import __version__
from revbisect.backends import REGISTRY as BACKEND_REGISTRY
from revbisect.config import DEFAULT_CONF_FNAME, get_config, is_enabled, write_config
from revbisect.log import colorize, init_logger

MODES = ("classic", "no-first-check")
PROCESS_OUTPUTS = ("none", "stdout")


class _StopAction(Action):
    def __init__(self, option_strings, dest=SUPPRESS, default=SUPPRESS, help=None):
        super(_StopAction, self).__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            nargs=0,
            help=help,
        )

    def __call__(self, parser, namespace, values, option_string=None):
        raise NotImplementedError


class WriteConfigAction(_StopAction):
    def __call__(self, parser, namespace, values, option_string=None):
        write_config(DEFAULT_CONF_FNAME)
        parser.exit()


def create_parser(defaults):
    """
    Create the revbisect command line parser (ArgumentParser instance).
    """
    usage = (
        "\n"
        " %(prog)s [OPTIONS] DIRECTORY COMMAND [COMMAND_ARGS...]"
        "\n"
        " %(prog)s --write-config"
    )

    parser = ArgumentParser(
        usage=usage,
        description=(
            "Find the first revision of a git history for which COMMAND"
            " fails. COMMAND is run in DIRECTORY for each tested revision:"
            " an exit code of 0 means the revision is good, anything else"
            " means it is bad. Options must be given before DIRECTORY,"
            " everything after it is the command."
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=__version__,
        help="print the revbisect version number and exits.",
    )

    parser.add_argument(
        "directory",
        nargs="?",
        help="the working tree of the git repository to bisect.",
    )

    parser.add_argument(
        "command",
        nargs=REMAINDER,
        help=(
            "the test command and its arguments. Everything after the"
            " command is given to it verbatim."
        ),
    )

    parser.add_argument(
        "--strategy",
        choices=BACKEND_REGISTRY.names(),
        default=defaults["strategy"],
        help=(
            "how the good and bad revisions are tracked. %s. Defaults to"
            " %%(default)s." % BACKEND_REGISTRY.describe()
        ),
    )

    parser.add_argument(
        "--mode",
        choices=MODES,
        default=defaults["mode"],
        help=(
            "'classic' first checks that the oldest revision is good and the"
            " newest one is bad. 'no-first-check' assumes it. Defaults to"
            " %(default)s."
        ),
    )

    parser.add_argument(
        "--process-output",
        choices=PROCESS_OUTPUTS,
        default=defaults["process-output"],
        help=(
            "what to do with the output of the test command. 'none' discards"
            " it, 'stdout' shows it. Defaults to %(default)s."
        ),
    )

    parser.add_argument(
        "--no-progress",
        action="store_false",
        dest="progress",
        default=is_enabled(defaults["progress"]),
        help="do not display the progress bar.",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show the debug output.",
    )

    parser.add_argument(
        "--write-config",
        action=WriteConfigAction,
        help="Helps to write the configuration file.",
    )

    return parser


class Configuration(object):
    """
    Holds the configuration extracted from the command line + configuration file.

    This is usually instantiated by calling :func:`cli`.

    :attr logger: the mozlog logger, created using the command line options
    :attr options: the raw command line options
    :attr ensure_good_and_bad: True if the oldest and newest revisions
                               must be tested before the bisection
    :attr process_output: True if the test command output is shown
    """

    def __init__(self, options, config):
        self.options = options
        self.logger = init_logger(debug=options.debug)
        self.ensure_good_and_bad = options.mode == "classic"
        self.process_output = options.process_output == "stdout"
        self.show_progress = options.progress

    @property
    def command(self):
        return self.options.command[0]

    @property
    def command_args(self):
        return self.options.command[1:]


def cli(argv=None, conf_file=DEFAULT_CONF_FNAME):
    """
    parse cli args basically and returns a :class:`Configuration`.

    The usage is printed and the program exits if the directory or the
    command is missing. A command starting with "-" is an option given
    after the directory, it is rejected.
    """
    config = get_config(conf_file)
    parser = create_parser(defaults=config)
    options = parser.parse_args(argv)
    if not options.directory or not options.command:
        parser.print_usage()
        parser.exit()
    if options.command[0].startswith("-"):
        # everything after DIRECTORY is the command
        parser.error(
            "options must be given before DIRECTORY, got %s as the command"
            % options.command[0]
        )
    if conf_file and not os.path.isfile(conf_file):
        print("*" * 10)
        print(
            colorize(
                "You can use a config file. Please use the "
                + "{sBRIGHT}--write-config{sRESET_ALL}"
                + " command line flag to help you create one."
            )
        )
        print("*" * 10)
        print()
    return Configuration(options, config)
