# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
Representation of the bisection history.
"""

from collections import namedtuple

BisectionStep = namedtuple("BisectionStep", "revision, verdict, duration")


class BisectionHistory(list):
    """
    Hold the history of a bisection.

    This is basically a list of :class:`BisectionStep`, the top
    most step being the most recent. Only the revisions that were
    actually tested by the test command are recorded.
    """

    def add(self, revision, verdict, duration=0.0):
        self.append(BisectionStep(revision, verdict, duration))

    def verdict_of(self, revision):
        """
        Returns the last verdict given to *revision*, or None if it was
        never tested.
        """
        for step in reversed(self):
            if step.revision.identifier == revision.identifier:
                return step.verdict
        return None

    def total_duration(self):
        return sum(step.duration for step in self)
