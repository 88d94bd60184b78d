# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# errors.py
#
# @desc: Exceptions raised by the deck engine. Protocol violations
#        (rejected proofs, malformed payloads) are kept apart from
#        faults of the external proof system, which may be retried.
# ===================================================================


class ZkDeckError(Exception):
    """Base class for all deck engine errors."""


class ValidationError(ZkDeckError):
    """Malformed input: wrong deck length, not a permutation, off-curve
    point, unexpected player. Raised before any proof system call."""


class ProofRejected(ZkDeckError):
    """A proof did not verify. Terminal for the shuffle round or for the
    reveal of a single card."""


class ProofSystemError(ZkDeckError):
    """The external prover or verifier failed (missing artifacts, crashed
    process, unreadable output). Not a protocol violation."""


class InvalidStateError(ZkDeckError):
    """Operation not allowed in the current phase."""


class MissingShare(ZkDeckError):
    """A reveal was aggregated or joined before all shares arrived.

    Attributes:
        slot (int): deck slot of the card
        missing (List[int]): player indices that did not submit
    """
    def __init__(self, slot, missing):
        self.slot = slot
        self.missing = sorted(missing)
        super().__init__("slot %d is missing shares from players %s"
                         % (slot, self.missing))


class DuplicateShare(ZkDeckError):
    """A player submitted a second share for the same card."""
    def __init__(self, slot, player_index):
        self.slot = slot
        self.player_index = player_index
        super().__init__("player %d already submitted a share for slot %d"
                         % (player_index, slot))


class UnknownCardMatch(ZkDeckError):
    """A decrypted point matches no canonical card."""
    def __init__(self, point, slot=None):
        self.point = point
        self.slot = slot
        where = "" if slot is None else " at slot %d" % slot
        super().__init__("decrypted point%s matches no card: %r"
                         % (where, point))
