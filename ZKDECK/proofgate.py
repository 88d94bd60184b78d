# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# proofgate.py
#
# @desc: Access to the external proof system. The deck engine only asks
#        two questions: was this deck shuffled and re-masked correctly,
#        and is this decryption share -sk*c0 for the registered key.
# ===================================================================
import logging
from enum import Enum

from ZKDECK.errors import ProofSystemError, ValidationError
from ZKDECK.shuffle import (decrypt_public_signals, shuffle_public_signals,
                            shuffle_signal_count, shuffle_witness_input,
                            validate_point)

logger = logging.getLogger(__name__)


class Circuit(Enum):
    SHUFFLE_ENCRYPT = "shuffle_encrypt"
    DECRYPT = "decrypt"


class ProofSystem:
    """Prover and verifier for the circuits in Circuit. Proofs are opaque
    to the deck engine."""

    def prove(self, circuit, witness, public_inputs):
        """Generate a proof

        Args:
            circuit (Circuit): circuit id
            witness (Dict): private circuit input
            public_inputs (List[int]): public signals

        Returns:
            proof
        """
        raise NotImplementedError('Abstract method prove')

    def verify(self, circuit, proof, public_inputs):
        """Verify a proof, False for a wrong proof, ProofSystemError if the
        verifier itself fails

        Returns:
            bool
        """
        raise NotImplementedError('Abstract method verify')


class ProofGate:
    """Shuffle and decryption share proofs on top of a ProofSystem.

    Attributes:
        curve (Curve): elliptic curve
        system (ProofSystem): external prover/verifier
        deck_size (int): number of cards in a deck
        verify_retries (int): extra attempts after a ProofSystemError
            during verification
    """
    def __init__(self, curve, system, deck_size, verify_retries=2):
        self.curve = curve
        self.system = system
        self.deck_size = deck_size
        self.verify_retries = verify_retries

    # shuffle -----------------------------------------------------------------
    def prove_shuffle(self, witness, old_deck, new_deck, agg_key):
        """Generate shuffle proof

        Args:
            witness (ShuffleWitness): permutation and blinding
            old_deck (Tuple[CipherCard]): deck before the shuffle
            new_deck (Tuple[CipherCard]): deck after the shuffle
            agg_key (Point): aggregate public key

        Returns:
            proof, List[int]: proof and public signals
        """
        signals = shuffle_public_signals(agg_key, old_deck, new_deck)
        circuit_input = shuffle_witness_input(agg_key, old_deck, new_deck,
                                              witness)
        logger.debug("proving shuffle of %d cards", len(old_deck))
        proof = self.system.prove(Circuit.SHUFFLE_ENCRYPT, circuit_input,
                                  signals)
        return proof, signals

    def verify_shuffle(self, proof, public_signals):
        """Verify shuffle proof against [aggKey, oldDeck, newDeck]

        Args:
            proof: shuffle proof
            public_signals (List[int]): public signals

        Returns:
            bool: True if verification successful, False else
        """
        expected = shuffle_signal_count(self.deck_size)
        if len(public_signals) != expected:
            raise ValidationError("shuffle signals have %d entries, expected "
                                  "%d" % (len(public_signals), expected))
        return self._verify(Circuit.SHUFFLE_ENCRYPT, proof, public_signals)

    # dec ---------------------------------------------------------------------
    def prove_decrypt_share(self, c0, sk):
        """Generate decryption share -sk*c0 and its proof

        Args:
            c0 (Point): first component of the card cipher
            sk (int): secret key

        Returns:
            Point, proof: decryption share and proof
        """
        validate_point(self.curve, c0, "c0")
        share = self.curve.negation(self.curve.multiplication(sk, c0))
        pk = self.curve.multiplication(sk, self.curve.generator)
        circuit_input = {"c0": [str(v) for v in c0.coordinates()],
                         "sk": str(sk)}
        proof = self.system.prove(Circuit.DECRYPT, circuit_input,
                                  decrypt_public_signals(c0, pk, share))
        return share, proof

    def verify_decrypt_share(self, proof, c0, pk, share):
        """Verify that share = -sk*c0 for the sk behind pk = sk*G

        Returns:
            bool: True if verification successful, False else
        """
        validate_point(self.curve, c0, "c0")
        validate_point(self.curve, pk, "public key")
        validate_point(self.curve, share, "decryption share")
        return self._verify(Circuit.DECRYPT, proof,
                            decrypt_public_signals(c0, pk, share))

    # -------------------------------------------------------------------------
    def _verify(self, circuit, proof, public_signals):
        attempt = 0
        while True:
            try:
                return bool(self.system.verify(circuit, proof,
                                               public_signals))
            except ProofSystemError:
                if attempt >= self.verify_retries:
                    raise
                attempt += 1
                logger.warning("%s verifier failed, retry %d of %d",
                               circuit.value, attempt, self.verify_retries)
