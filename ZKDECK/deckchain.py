# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# deckchain.py
#
# @desc: Shuffle chain. Every player shuffles the latest agreed deck
#        once, in turn; a round only advances when its shuffle proof
#        verifies against the chain's own current deck. After the last
#        player the deck is frozen and can be dealt.
#
#        INITIALIZED -> SHUFFLE_ROUND(1) -> ... -> SHUFFLE_ROUND(P)
#                    -> FROZEN
# ===================================================================
import logging
import threading
from collections import namedtuple
from enum import Enum

from ZKDECK.cards import DECK_SIZE
from ZKDECK.errors import InvalidStateError, ProofRejected, ValidationError
from ZKDECK.shuffle import (shuffle_public_signals, split_shuffle_signals,
                            validate_deck, validate_permutation,
                            validate_point)

logger = logging.getLogger(__name__)


class Phase(Enum):
    INITIALIZED = "initialized"
    SHUFFLE_ROUND = "shuffle_round"
    FROZEN = "frozen"


ChainState = namedtuple("ChainState", ["phase", "round", "deck"])

# payload sent by a player after shuffling
ShuffleSubmission = namedtuple(
    "ShuffleSubmission", ["player_index", "proof", "public_signals",
                          "new_deck"])

TranscriptEntry = namedtuple(
    "TranscriptEntry", ["round", "player_index", "proof", "public_signals"])

Rejection = namedtuple("Rejection", ["round", "player_index", "reason"])


class DeckChain:
    """Proof gated state machine owning the deck during the shuffle.

    Attributes:
        curve (Curve): elliptic curve
        gate (ProofGate): shuffle proof verification
        agg_key (Point): aggregate public key, fixed for the game
        initial_deck (Tuple[CipherCard]): deck before the first round
        num_players (int): number of shuffle rounds
        player_order (Tuple[int]): player index per round
        transcript (List[TranscriptEntry]): accepted rounds
        rejected (List[Rejection]): rejected attempts
    """
    def __init__(self, curve, gate, agg_key, initial_deck, num_players,
                 player_order=None, deck_size=DECK_SIZE):
        if num_players < 2:
            raise ValidationError("at least 2 players are needed")
        if player_order is None:
            player_order = range(num_players)
        player_order = tuple(player_order)
        validate_permutation(player_order, num_players)
        validate_point(curve, agg_key, "aggregate key")
        validate_deck(curve, initial_deck, deck_size)

        self.curve = curve
        self.gate = gate
        self.agg_key = agg_key
        self.initial_deck = tuple(initial_deck)
        self.num_players = num_players
        self.player_order = player_order
        self.deck_size = deck_size
        self.transcript = []
        self.rejected = []

        self._lock = threading.Lock()
        self._phase = Phase.INITIALIZED
        self._round = 0
        self._deck = self.initial_deck

    # state -------------------------------------------------------------------
    @property
    def phase(self):
        return self._phase

    @property
    def round(self):
        return self._round

    @property
    def deck(self):
        return self._deck

    @property
    def is_frozen(self):
        return self._phase is Phase.FROZEN

    @property
    def final_deck(self):
        """The shuffled deck, only available once the chain is frozen"""
        if self._phase is not Phase.FROZEN:
            raise InvalidStateError("deck is not frozen yet (%s)"
                                    % self._phase.value)
        return self._deck

    @property
    def expected_player(self):
        """Player index whose shuffle is expected next, None if none is"""
        if self._phase is not Phase.SHUFFLE_ROUND:
            return None
        return self.player_order[self._round - 1]

    def state(self):
        with self._lock:
            return self._snapshot()

    def _snapshot(self):
        return ChainState(self._phase, self._round, self._deck)

    # transitions -------------------------------------------------------------
    def begin(self):
        """Open the first shuffle round"""
        with self._lock:
            if self._phase is not Phase.INITIALIZED:
                raise InvalidStateError("chain already started (%s)"
                                        % self._phase.value)
            self._phase = Phase.SHUFFLE_ROUND
            self._round = 1
            logger.info("shuffle chain started, %d rounds", self.num_players)
            return self._snapshot()

    def submit(self, submission):
        """Accept one player's shuffle if its proof verifies against the
        current deck

        Args:
            submission (ShuffleSubmission): shuffled deck, proof and public
                signals

        Returns:
            ChainState: state after the round
        """
        with self._lock:
            if self._phase is not Phase.SHUFFLE_ROUND:
                raise InvalidStateError("no shuffle round open (%s)"
                                        % self._phase.value)
            expected_player = self.player_order[self._round - 1]
            if submission.player_index != expected_player:
                raise ValidationError(
                    "round %d belongs to player %d, not %d"
                    % (self._round, expected_player, submission.player_index))

            new_deck = tuple(submission.new_deck)
            validate_deck(self.curve, new_deck, self.deck_size)

            signals = shuffle_public_signals(self.agg_key, self._deck,
                                             new_deck)
            if list(submission.public_signals) != signals:
                self._reject(submission, "public signals do not match the "
                                         "current deck and aggregate key")
            if not self.gate.verify_shuffle(submission.proof, signals):
                self._reject(submission, "shuffle proof rejected")

            self._deck = new_deck
            self.transcript.append(TranscriptEntry(
                self._round, submission.player_index, submission.proof,
                signals))

            if self._round == self.num_players:
                self._phase = Phase.FROZEN
                logger.info("round %d accepted, deck frozen", self._round)
            else:
                logger.info("round %d accepted from player %d", self._round,
                            submission.player_index)
                self._round += 1

            return self._snapshot()

    def _reject(self, submission, reason):
        self.rejected.append(Rejection(self._round, submission.player_index,
                                       reason))
        logger.warning("round %d from player %d rejected: %s", self._round,
                       submission.player_index, reason)
        raise ProofRejected("round %d: %s" % (self._round, reason))


def validate_transcript(curve, gate, agg_key, initial_deck, transcript,
                        final_deck, deck_size=DECK_SIZE):
    """Re-check a recorded shuffle chain: the first round starts from the
    initial deck, every round starts where the previous one ended, all
    rounds use agg_key, every proof verifies and the last round ends with
    final_deck.

    Args:
        curve (Curve): elliptic curve
        gate (ProofGate): shuffle proof verification
        agg_key (Point): aggregate public key
        initial_deck (Tuple[CipherCard]): deck before the first round
        transcript (List[TranscriptEntry]): accepted rounds
        final_deck (Tuple[CipherCard]): deck after the last round

    Returns:
        bool: True, raises ProofRejected otherwise
    """
    if not transcript:
        raise ProofRejected("empty shuffle transcript")

    current = tuple(initial_deck)
    for entry in transcript:
        key, old_deck, new_deck = split_shuffle_signals(
            curve, entry.public_signals, deck_size)
        if key != agg_key:
            raise ProofRejected("round %d: public key mismatch" % entry.round)
        if old_deck != current:
            raise ProofRejected("round %d: shuffle chain discontinuity"
                                % entry.round)
        if not gate.verify_shuffle(entry.proof, entry.public_signals):
            raise ProofRejected("round %d: shuffle proof rejected"
                                % entry.round)
        current = new_deck

    if current != tuple(final_deck):
        raise ProofRejected("final deck mismatch")
    return True
