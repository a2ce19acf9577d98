# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Reading and writing of the configuration file.
"""

import os

from configobj import ConfigObj, ParseError

from revbisect.errors import RevBisectError
from revbisect.log import colorize

DEFAULT_CONF_FNAME = os.path.expanduser(os.path.join("~", ".revbisect", "revbisect.cfg"))

# default values when not defined in config file.
# Note that this is also the list of options that can be used in config file
DEFAULTS = {
    "strategy": "self",
    "mode": "classic",
    "process-output": "none",
    "progress": "yes",
}

CONF_HELP = """\
# ------ revbisect configuration file ------

# Most of the command line options can be used in here.
# Just remove the -- from the long option names, e.g.

# strategy = git
# mode = no-first-check
"""


def get_config(conf_path):
    """
    Get custom defaults from configuration file in argument.

    Unknown keys are ignored, missing keys take their value from
    :data:`DEFAULTS`.
    """
    config = dict(DEFAULTS)
    if not conf_path:
        return config
    try:
        config.update(ConfigObj(conf_path))
    except ParseError as exc:
        raise RevBisectError("Error while reading the config file %s: %s" % (conf_path, exc))
    return config


def is_enabled(value):
    """
    Returns True if a configuration value reads as a true boolean.
    """
    return str(value).strip().lower() in ("1", "yes", "true", "on")


def write_config(conf_path):
    """
    Write (or complete) the configuration file with the default values.

    Values already defined in the file are left untouched.
    """
    conf_dir = os.path.dirname(conf_path)
    if conf_dir and not os.path.isdir(conf_dir):
        os.makedirs(conf_dir)

    config = ConfigObj(conf_path)
    if not config.initial_comment:
        config.initial_comment = CONF_HELP.splitlines()

    for optname in sorted(DEFAULTS):
        name = colorize("{fGREEN}%s{sRESET_ALL}") % optname
        if optname in config:
            print("%s: %s (already defined)" % (name, config[optname]))
        else:
            config[optname] = DEFAULTS[optname]
            print("%s: %s" % (name, config[optname]))

    config.write()

    print()
    print(colorize("Config file {sBRIGHT}%s{sRESET_ALL} written.") % conf_path)
