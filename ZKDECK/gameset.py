# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# gameset.py
#
# @desc: Backend side of one game instance: player registration and the
#        aggregate key, the shuffle chain, dealing of slots and the
#        reveal of dealt cards. Game instances share no state.
# ===================================================================
import logging
import threading
from enum import Enum

from ZKDECK.cards import CardResolver, init_deck, init_enc_deck
from ZKDECK.config import build_curve
from ZKDECK.deckchain import DeckChain
from ZKDECK.errors import (InvalidStateError, ProofRejected,
                           UnknownCardMatch, ValidationError)
from ZKDECK.proofgate import ProofGate
from ZKDECK.proofs import PokVerifier, SnarkjsProofSystem
from ZKDECK.shuffle import validate_permutation, validate_point
from ZKDECK.threshold import ThresholdDecryptor
from ZKDECK.toolbox import Toolbox

logger = logging.getLogger(__name__)

TABLE = "table"


class GamePhase(Enum):
    REGISTRATION = "registration"
    SHUFFLING = "shuffling"
    DEALING = "dealing"


class GameSet:
    """Game information and cards

    Attributes:
        config (GameConfig): game settings
        curve (Curve): elliptic curve
        gate (ProofGate): proof verification
        cards_no (int): number of total game cards
        cards_raw (Tuple[Point]): card i forced to curve as (i+1)*G
        cards_masked (Tuple[CipherCard]): cards_raw masked with randomness 0
        cards_owner (List): owner index per slot, TABLE for public cards
        cards_unmasked (List[Card]): revealed card per slot
        public_keys (Dict[int, Point]): public key share per player
        public_key (Point): aggregate public key
        player_order (Tuple[int]): order of players for the shuffle
        chain (DeckChain): shuffle chain, created once all players joined
        decryptor (ThresholdDecryptor): reveals, created once frozen
        resolver (CardResolver): point to card lookup
    """

    def __init__(self, config, system=None, curve=None, gate=None,
                 player_order=None):
        """
        Args:
            config (GameConfig): game settings
            system (ProofSystem): proof system, unused if gate is given,
                snarkjs on config.circuits_dir if both are None
            curve (Curve): elliptic curve, built from config if None
            gate (ProofGate): proof gate, built from system if None
            player_order (List[int]): shuffle order, 0..n-1 if None
        """
        self.config = config.validate()
        self.curve = curve if curve is not None else build_curve(config.curve)
        if gate is None:
            if system is None:
                system = SnarkjsProofSystem.from_directory(
                    config.circuits_dir, config.snarkjs_bin)
            gate = ProofGate(self.curve, system, config.deck_size,
                             config.verify_retries)
        self.gate = gate

        self.cards_no = config.deck_size
        self.cards_raw = init_deck(self.curve, self.cards_no)
        self.cards_masked = init_enc_deck(self.curve, self.cards_raw)
        self.cards_owner = [None] * self.cards_no
        self.cards_unmasked = [None] * self.cards_no
        self.resolver = CardResolver(self.curve, self.cards_raw)

        if player_order is not None:
            player_order = tuple(player_order)
            validate_permutation(player_order, config.num_players)

        self.public_keys = {}
        self.public_key = None
        self.player_order = player_order
        self.chain = None
        self.decryptor = None
        self.deck_position = 0

        self._lock = threading.Lock()
        self._phase = GamePhase.REGISTRATION

    @property
    def phase(self):
        return self._phase

    @property
    def player_no(self):
        return self.config.num_players

    def toolbox(self):
        """Player side toolbox matching this game's curve, proof gate and
        key size"""
        return Toolbox(self.curve, self.gate, self.config.key_bits,
                       self.cards_no)

    # keygen ------------------------------------------------------------------
    def register_player(self, public_key, proof):
        """Check the proof of knowledge of a public key share and register
        the player. The last registration fixes the aggregate key and opens
        the shuffle chain.

        Args:
            public_key (Point): public key share
            proof (List[int]): challenge and response for pk = sk*G

        Returns:
            int: player index
        """
        with self._lock:
            if self._phase is not GamePhase.REGISTRATION:
                raise InvalidStateError("registration is closed")
            validate_point(self.curve, public_key, "public key")
            if public_key in self.public_keys.values():
                raise ValidationError("public key already registered")
            try:
                c, s = proof
            except (TypeError, ValueError):
                raise ValidationError("malformed key proof") from None
            verifier = PokVerifier(self.curve, self.curve.generator,
                                   public_key)
            if not verifier.pok_nizk(c, s):
                raise ProofRejected("proof of knowledge for public key "
                                    "rejected")

            index = len(self.public_keys)
            public_keys = dict(self.public_keys)
            public_keys[index] = public_key

            # nothing is stored until the chain for the last player exists
            if len(public_keys) == self.player_no:
                agg_key = self.curve.summation(public_keys.values())
                chain = DeckChain(self.curve, self.gate, agg_key,
                                  self.cards_masked, self.player_no,
                                  self.player_order, self.cards_no)
                chain.begin()
                self.public_key = agg_key
                self.chain = chain
                self.player_order = chain.player_order
                self._phase = GamePhase.SHUFFLING

            self.public_keys = public_keys
            logger.info("player %d registered (%d of %d)", index,
                        len(public_keys), self.player_no)
            return index

    # shuffle -----------------------------------------------------------------
    def submit_shuffle(self, submission):
        """Pass a shuffle round to the chain, open reveals once frozen

        Args:
            submission (ShuffleSubmission): shuffle payload

        Returns:
            ChainState: state of the chain after the round
        """
        if self._phase is not GamePhase.SHUFFLING:
            raise InvalidStateError("game is not shuffling (%s)"
                                    % self._phase.value)
        state = self.chain.submit(submission)
        if self.chain.is_frozen:
            with self._lock:
                self.decryptor = ThresholdDecryptor(
                    self.curve, self.gate, self.chain, self.public_keys)
                self._phase = GamePhase.DEALING
        return state

    @property
    def cards_shuffled(self):
        if self.chain is None:
            raise InvalidStateError("shuffle has not started")
        return self.chain.final_deck

    # deal --------------------------------------------------------------------
    def _check_available(self, count):
        if self._phase is not GamePhase.DEALING:
            raise InvalidStateError("cards can only be dealt from a frozen "
                                    "deck")
        if count < 1:
            raise ValidationError("at least one card has to be dealt")
        if self.deck_position + count > self.cards_no:
            raise ValidationError("not enough cards in the deck")

    def _take_slots(self, count):
        self._check_available(count)
        slots = list(range(self.deck_position, self.deck_position + count))
        self.deck_position += count
        return slots

    def deal_hands(self, cards_per_player=2):
        """Deal consecutive slots to every player in shuffle order

        Args:
            cards_per_player (int): cards per player

        Returns:
            Dict[int, List[int]]: slots per player
        """
        with self._lock:
            self._check_available(cards_per_player * self.player_no)
            hands = {}
            for player in self.player_order:
                slots = self._take_slots(cards_per_player)
                for slot in slots:
                    self.cards_owner[slot] = player
                hands[player] = slots
            logger.info("dealt %d cards to each of %d players",
                        cards_per_player, len(hands))
            return hands

    def deal_table(self, count):
        """Deal count slots face up, revealed with shares of all players

        Returns:
            List[int]: slots
        """
        with self._lock:
            slots = self._take_slots(count)
            for slot in slots:
                self.cards_owner[slot] = TABLE
            logger.info("dealt %d table cards", count)
            return slots

    # reveal ------------------------------------------------------------------
    def _require_decryptor(self):
        if self.decryptor is None:
            raise InvalidStateError("deck is not frozen yet")
        return self.decryptor

    def open_reveal(self, slot):
        """Start collecting decryption shares for a dealt slot. Shares come
        from everybody but the owner, or from every player for a table card.

        Args:
            slot (int): deck slot

        Returns:
            ShareAccumulator
        """
        decryptor = self._require_decryptor()
        if not 0 <= slot < self.cards_no:
            raise ValidationError("slot %d out of range" % slot)
        owner = self.cards_owner[slot]
        if owner is None:
            raise InvalidStateError("slot %d has not been dealt" % slot)
        return decryptor.open_reveal(slot, None if owner == TABLE else owner)

    def submit_share(self, share):
        """Verify and store a decryption share

        Args:
            share (DecryptShare): decryption share payload
        """
        self._require_decryptor().submit(share)

    def partially_decrypted(self, slot, wait=False):
        """c1 plus all non-owner shares of the card at slot; with wait, block
        up to config.share_timeout seconds for missing shares"""
        decryptor = self._require_decryptor()
        if not wait:
            return decryptor.partially_decrypted(slot)
        return decryptor.join(slot, self.config.share_timeout)

    def record_reveal(self, slot, point):
        """Resolve the point an owner unmasked and record the card

        Args:
            slot (int): deck slot
            point (Point): unmasked card point

        Returns:
            Card
        """
        accumulator = self._require_decryptor().accumulator(slot)
        try:
            card = self.resolver.require(point, slot)
        except UnknownCardMatch:
            logger.warning("slot %d revealed to an unknown point", slot)
            raise

        with self._lock:
            # every card sits in exactly one slot of the frozen deck
            if card in self.cards_unmasked:
                logger.warning("slot %d revealed to %s, which is already "
                               "revealed at slot %d", slot, card,
                               self.cards_unmasked.index(card))
                raise ValidationError("%s is already revealed at slot %d"
                                      % (card,
                                         self.cards_unmasked.index(card)))
            accumulator.mark_revealed()
            self.cards_unmasked[slot] = card
        logger.info("slot %d revealed", slot)
        return card

    def reveal_public(self, slot, wait=False):
        """Reveal a table card once every player submitted a share

        Args:
            slot (int): deck slot
            wait (bool): block up to config.share_timeout seconds for
                missing shares

        Returns:
            Card
        """
        decryptor = self._require_decryptor()
        if wait:
            decryptor.join(slot, self.config.share_timeout)
        return self.record_reveal(slot, decryptor.public_plaintext(slot))
