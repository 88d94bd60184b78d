"""
Tests for the player side toolbox.

Run with: pytest Test/test_toolbox.py -v
"""

import pytest

from ZKDECK.errors import ValidationError
from ZKDECK.proofs import PokVerifier
from ZKDECK.random_generator import RandomGenerator


class TestKeys:

    def test_key_generate(self, curve, toolbox):
        keys = toolbox.key_generate(4)
        assert keys.index == 4
        assert 0 < keys.keypair.sk < 2 ** 128
        assert keys.keypair.pk == curve.multiplication(keys.keypair.sk,
                                                       curve.generator)
        c, s = keys.proof
        assert PokVerifier(curve, curve.generator,
                           keys.keypair.pk).pok_nizk(c, s)

    def test_keys_differ(self, toolbox):
        assert toolbox.key_generate(0).keypair.sk != \
            toolbox.key_generate(0).keypair.sk

    def test_key_combine(self, curve, toolbox, players):
        agg = toolbox.key_combine([p.keypair.pk for p in players])
        sk = sum(p.keypair.sk for p in players)
        assert agg == curve.multiplication(sk, curve.generator)


class TestShuffle:

    def test_shuffle_and_prove(self, toolbox, gate, enc_deck, agg_key):
        submission = toolbox.shuffle_and_prove(enc_deck, agg_key, 1)
        assert submission.player_index == 1
        assert len(submission.new_deck) == 52
        assert gate.verify_shuffle(submission.proof,
                                   submission.public_signals)

    def test_fixed_permutation(self, curve, toolbox, enc_deck, agg_key,
                               players):
        perm = RandomGenerator.get_random_permutation_seed(52, 99)
        submission = toolbox.shuffle_and_prove(enc_deck, agg_key, 0,
                                               permutation=perm)
        sk = sum(p.keypair.sk for p in players)
        moved = submission.new_deck[perm[10]]
        assert curve.subtraction(moved.c1, curve.multiplication(
            sk, moved.c0)) == enc_deck[10].c1

    def test_fixed_witness_is_deterministic(self, curve, toolbox, enc_deck,
                                            agg_key):
        perm = RandomGenerator.get_random_permutation_seed(52, 1)
        blinding = curve.rand_gen.get_random_array_seed(52, 2)
        a = toolbox.shuffle_and_prove(enc_deck, agg_key, 0, perm, blinding)
        b = toolbox.shuffle_and_prove(enc_deck, agg_key, 0, perm, blinding)
        assert a.new_deck == b.new_deck
        assert a.public_signals == b.public_signals

    def test_invalid_permutation(self, toolbox, enc_deck, agg_key):
        with pytest.raises(ValidationError):
            toolbox.shuffle_and_prove(enc_deck, agg_key, 0,
                                      permutation=[0] * 52)


class TestDecryption:

    def test_dec_generate_and_finalize(self, curve, toolbox, enc_deck,
                                       agg_key, players, plain_deck):
        perm = list(range(52))
        deck = toolbox.shuffle_and_prove(enc_deck, agg_key, 0,
                                         permutation=perm).new_deck
        shares = [toolbox.dec_generate(keys, deck, 6) for keys in players[1:]]
        for share in shares:
            assert share.card_slot == 6
            assert share.c0 == deck[6].c0
        partial = curve.addition(deck[6].c1,
                                 curve.summation(s.share for s in shares))
        point = toolbox.dec_finalize(players[0], deck[6], partial)
        assert point == plain_deck[6]
