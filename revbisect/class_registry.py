# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.


class ClassRegistry(object):
    """
    A registry of classes identified by a unique name.

    It is used to select a bisection strategy from the command line or the
    configuration file.

    :param attr_name: On each registered class, the unique name will be saved
                      under this class attribute name.
    """

    def __init__(self, attr_name="name"):
        self._classes = {}
        self.attr_name = attr_name

    def register(self, name, description=""):
        """
        Register a class with a given name.

        :param name: name to identify the class
        :param description: one line description, shown in the command line
                            help.
        """
        assert name not in self._classes, "%s is already registered" % name

        def wrapper(klass):
            self._classes[name] = klass
            setattr(klass, self.attr_name, name)
            klass.description = description
            return klass

        return wrapper

    def get(self, name):
        """
        Returns a registered class.

        :raises: KeyError if there is no class registered under that name.
        """
        return self._classes[name]

    def names(self):
        """
        Returns the sorted list of registered names.
        """
        return sorted(self._classes)

    def describe(self):
        """
        Returns a string listing each registered name with its description.
        """
        return ", ".join(
            "'%s' (%s)" % (name, self._classes[name].description)
            if self._classes[name].description
            else "'%s'" % name
            for name in self.names()
        )
