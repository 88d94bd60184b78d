# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# toolbox.py
#
# @desc: Player side of the deck protocol: key generation with a proof
#        of knowledge, shuffle and re-mask of the current deck with a
#        shuffle proof, decryption shares for other players' cards and
#        unmasking of own cards. Players are plain data (PlayerKeys);
#        the toolbox itself keeps no player state.
# ===================================================================
from collections import namedtuple

from ZKDECK.cards import DECK_SIZE
from ZKDECK.deckchain import ShuffleSubmission
from ZKDECK.proofs import PokProver
from ZKDECK.shuffle import shuffle_encrypt
from ZKDECK.threshold import DecryptShare, owner_finalize

KeyPair = namedtuple("KeyPair", ["sk", "pk"])

# index: player index, keypair: KeyPair, proof: [c, s] for pk = sk*G
PlayerKeys = namedtuple("PlayerKeys", ["index", "keypair", "proof"])


class Toolbox:
    """Toolbox for Mental Card Games

    Attributes:
        curve (Curve): elliptic curve
        gate (ProofGate): proof generation
        key_bits (int): bit length of secret keys
        N (int): number of cards
    """
    def __init__(self, curve, gate, key_bits=128, N=DECK_SIZE):
        self.curve = curve
        self.gate = gate
        self.key_bits = key_bits
        self.N = N

    # keygen ------------------------------------------------------------------
    def key_generate(self, index):
        """Generate secret key and public key share and a proof that
        pk = generator*sk

        Args:
            index (int): player index

        Returns:
            PlayerKeys
        """
        sk = self.curve.rand_gen.get_random_value_bits(self.key_bits)
        pk = self.curve.multiplication(sk, self.curve.generator)
        proof = PokProver(self.curve, self.curve.generator, pk, sk).pok_nizk()
        return PlayerKeys(index, KeyPair(sk, pk), proof)

    def key_combine(self, public_keys):
        """Aggregate public key pk = sum(pk_i)"""
        return self.curve.summation(public_keys)

    # shuffle -----------------------------------------------------------------
    def shuffle_mix_remask_cards(self, deck, agg_key):
        """Shuffle cards due to a fresh random permutation and re-mask them
        with fresh random masking values

        Args:
            deck (Tuple[CipherCard]): masked cards
            agg_key (Point): aggregate public key

        Returns:
            Tuple[Tuple[CipherCard], ShuffleWitness]: shuffled deck, witness
        """
        permutation = self.curve.rand_gen.get_random_permutation(self.N)
        blinding = self.curve.rand_gen.get_random_array(self.N)
        return shuffle_encrypt(self.curve, deck, permutation, blinding,
                               agg_key)

    def shuffle_and_prove(self, deck, agg_key, player_index, permutation=None,
                          blinding=None):
        """Shuffle and re-mask cards and generate shuffle proof

        Args:
            deck (Tuple[CipherCard]): current deck of the chain
            agg_key (Point): aggregate public key
            player_index (int): own player index
            permutation (List[int]): fixed permutation, random if None
            blinding (List[int]): fixed masking values, random if None

        Returns:
            ShuffleSubmission
        """
        if permutation is None and blinding is None:
            new_deck, witness = self.shuffle_mix_remask_cards(deck, agg_key)
        else:
            if permutation is None:
                permutation = self.curve.rand_gen.get_random_permutation(
                    self.N)
            if blinding is None:
                blinding = self.curve.rand_gen.get_random_array(self.N)
            new_deck, witness = shuffle_encrypt(self.curve, deck, permutation,
                                                blinding, agg_key)

        proof, signals = self.gate.prove_shuffle(witness, deck, new_deck,
                                                 agg_key)
        return ShuffleSubmission(player_index, proof, signals, new_deck)

    # dec ---------------------------------------------------------------------
    def dec_generate(self, keys, deck, slot):
        """Generate decryption share -sk*c0 and proof for another player's
        card

        Args:
            keys (PlayerKeys): own keys
            deck (Tuple[CipherCard]): frozen deck
            slot (int): slot of the card

        Returns:
            DecryptShare
        """
        c0 = deck[slot].c0
        share, proof = self.gate.prove_decrypt_share(c0, keys.keypair.sk)
        return DecryptShare(keys.index, slot, proof, c0, share)

    def dec_finalize(self, keys, cipher, partial):
        """Unmask own card from the partially decrypted value

        Args:
            keys (PlayerKeys): own keys
            cipher (CipherCard): card cipher
            partial (Point): c1 plus all other players' shares

        Returns:
            Point: card point
        """
        return owner_finalize(self.curve, partial, cipher.c0,
                              keys.keypair.sk)
