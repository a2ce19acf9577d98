# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""
This module provides the ordered sequence of revisions that is bisected.

A :class:`RevisionSequence` acts like a read-only list of :class:`Revision`
objects, oldest first. :class:`GitHistory` reads it from a git repository.
"""

from collections import namedtuple

from mozlog import get_proxy_logger

from revbisect.errors import GitError, HistoryUnavailable

LOG = get_proxy_logger("History")

# ASCII unit separator, it can not appear in a commit subject
FIELD_SEP = "\x1f"


class Revision(namedtuple("Revision", "identifier, position, date, message")):
    """
    An immutable point of the history.

    :attr identifier: the full commit hash
    :attr position: the rank in the ordered history (0 is the oldest), or
                    None if the revision is not part of the bisected sequence
    :attr date: ISO date of the revision, may be empty
    :attr message: first line of the commit message, may be empty
    """

    __slots__ = ()

    def __new__(cls, identifier, position=None, date="", message=""):
        return super(Revision, cls).__new__(cls, identifier, position, date, message)

    @property
    def short_identifier(self):
        return self.identifier[:12]

    def __str__(self):
        return self.identifier


class RevisionSequence(object):
    """
    Ordered, immutable sequence of revisions (oldest first).

    This act like a list, providing the following methods:

     - len(revisions)  # number of revisions
     - revisions[0]  # item access
     - revisions.find("abc123")  # lookup by (possibly abbreviated) hash
    """

    def __init__(self, revisions):
        self._revisions = tuple(revisions)
        self._by_id = dict((r.identifier, r) for r in self._revisions)

    @classmethod
    def from_identifiers(cls, identifiers):
        """
        Build a sequence from a list of identifiers, oldest first.
        """
        return cls(Revision(ident, i) for i, ident in enumerate(identifiers))

    def __len__(self):
        return len(self._revisions)

    def __getitem__(self, index):
        return self._revisions[index]

    def __iter__(self):
        return iter(self._revisions)

    def __repr__(self):
        return "<RevisionSequence %s>" % [r.short_identifier for r in self._revisions]

    @property
    def oldest(self):
        return self._revisions[0]

    @property
    def newest(self):
        return self._revisions[-1]

    def find(self, identifier):
        """
        Returns the :class:`Revision` for the given identifier, or None if it
        is not part of the sequence. Abbreviated hashes are accepted when
        they are not ambiguous.
        """
        revision = self._by_id.get(identifier)
        if revision is not None or len(identifier) >= 40:
            return revision
        matches = [r for r in self._revisions if r.identifier.startswith(identifier)]
        if len(matches) == 1:
            return matches[0]
        return None

    @staticmethod
    def mid_point(lower, upper):
        """
        Returns the position halfway between two positions, rounded toward
        the earlier revision.
        """
        return (lower + upper) // 2


class GitHistory(object):
    """
    Read the linear history of a git repository.

    Only the first-parent chain of *ref* is used, so the sequence is linear
    even if the history contains merges.
    """

    def __init__(self, git, ref="HEAD"):
        self.git = git
        self.ref = ref
        self._sequence = None

    def _read(self):
        try:
            output = self.git.run(
                "log",
                "--first-parent",
                "--reverse",
                "--date=iso-strict",
                "--format=%H" + FIELD_SEP + "%ad" + FIELD_SEP + "%s",
                self.ref,
            )
        except GitError as exc:
            raise HistoryUnavailable("Unable to read the history of %s: %s" % (self.git.path, exc))
        revisions = []
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = line.split(FIELD_SEP, 2)
            fields += [""] * (3 - len(fields))
            identifier, date, message = fields
            revisions.append(Revision(identifier, len(revisions), date, message))
        if not revisions:
            raise HistoryUnavailable("No revision found in %s" % self.git.path)
        LOG.debug("Read %d revisions from %s" % (len(revisions), self.git.path))
        return RevisionSequence(revisions)

    def sequence(self):
        """
        Returns the :class:`RevisionSequence` of the history, oldest first.

        :raises: :class:`revbisect.errors.HistoryUnavailable`
        """
        if self._sequence is None:
            self._sequence = self._read()
        return self._sequence

    def oldest_revision(self):
        return self.sequence().oldest

    def count(self):
        return len(self.sequence())
