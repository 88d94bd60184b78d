# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# threshold.py
#
# @desc: Cooperative decryption of dealt cards. Every player except the
#        owner of a card contributes -sk_j*c0 with a proof; the sum of
#        all contributions plus c1 leaves only the owner's part:
#
#        partial   = c1 + sum(-sk_j*c0)            j != owner
#        plaintext = partial - sk_owner*c0
#
#        Cards without owner (table cards) need a share from every
#        player and partial is already the plaintext.
# ===================================================================
import logging
import threading
from collections import namedtuple
from enum import Enum

from ZKDECK.errors import (DuplicateShare, InvalidStateError, MissingShare,
                           ProofRejected, ValidationError)
from ZKDECK.shuffle import validate_point

logger = logging.getLogger(__name__)


class RevealPhase(Enum):
    REVEAL = "reveal"
    COMPLETE = "complete"
    REVEALED = "revealed"
    ABORTED = "aborted"


# payload sent by a non-owner for one card
DecryptShare = namedtuple(
    "DecryptShare", ["player_index", "card_slot", "proof", "c0", "share"])


def owner_finalize(curve, partial, c0, sk):
    """Remove the owner's mask: plaintext = partial - sk*c0

    Args:
        curve (Curve): elliptic curve
        partial (Point): partially decrypted c1
        c0 (Point): first component of the card cipher
        sk (int): owner's secret key

    Returns:
        Point: card point
    """
    return curve.addition(partial,
                          curve.negation(curve.multiplication(sk, c0)))


class ShareAccumulator:
    """Decryption shares of a single card.

    Attributes:
        slot (int): deck slot of the card
        cipher (CipherCard): the card cipher
        owner (int): owning player, None for a public card
        expected (FrozenSet[int]): players that have to submit a share
    """
    def __init__(self, curve, gate, slot, cipher, owner, public_keys):
        self.curve = curve
        self.gate = gate
        self.slot = slot
        self.cipher = cipher
        self.owner = owner
        self.public_keys = public_keys
        self.expected = frozenset(i for i in public_keys if i != owner)

        self._cond = threading.Condition()
        self._shares = {}
        self._phase = RevealPhase.REVEAL

    @property
    def phase(self):
        return self._phase

    @property
    def missing(self):
        with self._cond:
            return sorted(self.expected - set(self._shares))

    def _check(self, share):
        if self._phase is not RevealPhase.REVEAL:
            raise InvalidStateError("slot %d is not collecting shares (%s)"
                                    % (self.slot, self._phase.value))
        if share.card_slot != self.slot:
            raise ValidationError("share for slot %d sent to slot %d"
                                  % (share.card_slot, self.slot))
        if share.player_index == self.owner:
            raise ValidationError("player %d owns slot %d and must not "
                                  "submit a share" % (self.owner, self.slot))
        if share.player_index not in self.expected:
            raise ValidationError("player %d is not part of the game"
                                  % share.player_index)
        if share.player_index in self._shares:
            raise DuplicateShare(self.slot, share.player_index)
        if share.c0 != self.cipher.c0:
            raise ValidationError("share for slot %d uses a different c0"
                                  % self.slot)
        validate_point(self.curve, share.share, "decryption share")

    def add(self, share):
        """Verify and store one share

        Args:
            share (DecryptShare): decryption share with proof
        """
        with self._cond:
            self._check(share)

        # proofs of different players are verified in parallel
        valid = self.gate.verify_decrypt_share(
            share.proof, self.cipher.c0, self.public_keys[share.player_index],
            share.share)

        with self._cond:
            if not valid:
                if self._phase is RevealPhase.REVEAL:
                    self._phase = RevealPhase.ABORTED
                    self._cond.notify_all()
                logger.warning("invalid share from player %d, reveal of "
                               "slot %d aborted", share.player_index,
                               self.slot)
                raise ProofRejected("decryption share of player %d for slot "
                                    "%d rejected" % (share.player_index,
                                                     self.slot))
            self._check(share)
            self._shares[share.player_index] = share.share
            if len(self._shares) == len(self.expected):
                self._phase = RevealPhase.COMPLETE
                self._cond.notify_all()
                logger.info("all %d shares for slot %d received",
                            len(self.expected), self.slot)

    def join(self, timeout=None):
        """Block until every expected share arrived

        Args:
            timeout (float): seconds to wait, None waits forever

        Returns:
            Point: partially decrypted c1
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._phase is not RevealPhase.REVEAL, timeout)
            return self._partial()

    def partially_decrypted(self):
        """c1 plus all shares; fails unless every expected share arrived"""
        with self._cond:
            return self._partial()

    def _partial(self):
        if self._phase is RevealPhase.ABORTED:
            raise InvalidStateError("reveal of slot %d was aborted"
                                    % self.slot)
        if len(self._shares) != len(self.expected):
            raise MissingShare(self.slot, self.expected - set(self._shares))
        return self.curve.addition(self.cipher.c1,
                                   self.curve.summation(self._shares.values()))

    def mark_revealed(self):
        with self._cond:
            if self._phase is not RevealPhase.COMPLETE:
                raise InvalidStateError("slot %d cannot be revealed (%s)"
                                        % (self.slot, self._phase.value))
            self._phase = RevealPhase.REVEALED


class ThresholdDecryptor:
    """Per card share accumulators for a frozen deck.

    Attributes:
        curve (Curve): elliptic curve
        gate (ProofGate): decryption share verification
        deck (Tuple[CipherCard]): frozen deck
        public_keys (Dict[int, Point]): public key share per player
    """
    def __init__(self, curve, gate, chain, public_keys):
        """
        Args:
            curve (Curve): elliptic curve
            gate (ProofGate): decryption share verification
            chain (DeckChain): frozen shuffle chain
            public_keys (Dict[int, Point]): public key share per player
        """
        self.curve = curve
        self.gate = gate
        self.deck = chain.final_deck
        self.public_keys = dict(public_keys)
        self._lock = threading.Lock()
        self._accumulators = {}

    def open_reveal(self, slot, owner=None):
        """Start collecting shares for the card at slot

        Args:
            slot (int): deck slot
            owner (int): owning player, None for a public card

        Returns:
            ShareAccumulator
        """
        if not 0 <= slot < len(self.deck):
            raise ValidationError("slot %d out of range" % slot)
        if owner is not None and owner not in self.public_keys:
            raise ValidationError("unknown owner %d" % owner)

        with self._lock:
            if slot in self._accumulators:
                raise InvalidStateError("reveal of slot %d already opened"
                                        % slot)
            accumulator = ShareAccumulator(self.curve, self.gate, slot,
                                           self.deck[slot], owner,
                                           self.public_keys)
            self._accumulators[slot] = accumulator
            return accumulator

    def accumulator(self, slot):
        with self._lock:
            try:
                return self._accumulators[slot]
            except KeyError:
                raise InvalidStateError("no reveal open for slot %d"
                                        % slot) from None

    def submit(self, share):
        self.accumulator(share.card_slot).add(share)

    def join(self, slot, timeout=None):
        return self.accumulator(slot).join(timeout)

    def partially_decrypted(self, slot):
        return self.accumulator(slot).partially_decrypted()

    def public_plaintext(self, slot):
        """Plaintext point of a card revealed to everybody"""
        accumulator = self.accumulator(slot)
        if accumulator.owner is not None:
            raise InvalidStateError("slot %d is owned by player %d"
                                    % (slot, accumulator.owner))
        return accumulator.partially_decrypted()
