"""
Tests for the proof gate in front of the external proof system.

Run with: pytest Test/test_proofgate.py -v
"""

import pytest

from ZKDECK.errors import ProofSystemError, ValidationError
from ZKDECK.proofgate import Circuit, ProofGate

from conftest import DigestProofSystem, FlakyProofSystem, StaticProofSystem


@pytest.fixture
def shuffled(toolbox, enc_deck, agg_key):
    return toolbox.shuffle_mix_remask_cards(enc_deck, agg_key)


class TestShuffleProofs:

    def test_honest_proof_verifies(self, gate, shuffled, enc_deck, agg_key):
        new_deck, witness = shuffled
        proof, signals = gate.prove_shuffle(witness, enc_deck, new_deck,
                                            agg_key)
        assert len(signals) == 627
        assert gate.verify_shuffle(proof, signals)

    @pytest.mark.parametrize("position", [0, 1, 100, 400, 626])
    def test_changed_signal_fails(self, gate, shuffled, enc_deck, agg_key,
                                  position):
        new_deck, witness = shuffled
        proof, signals = gate.prove_shuffle(witness, enc_deck, new_deck,
                                            agg_key)
        signals[position] ^= 1
        assert gate.verify_shuffle(proof, signals) is False

    def test_wrong_length_never_reaches_verifier(self, curve):
        system = StaticProofSystem(True)
        gate = ProofGate(curve, system, deck_size=52)
        with pytest.raises(ValidationError):
            gate.verify_shuffle("proof", [0] * 626)
        assert system.verify_calls == 0

    def test_witness_handed_to_prover(self, curve, shuffled, enc_deck,
                                      agg_key):
        captured = {}

        class Recording(DigestProofSystem):
            def prove(self, circuit, witness, public_inputs):
                captured["circuit"] = circuit
                captured["witness"] = witness
                return super().prove(circuit, witness, public_inputs)

        gate = ProofGate(curve, Recording(), deck_size=52)
        new_deck, witness = shuffled
        gate.prove_shuffle(witness, enc_deck, new_deck, agg_key)
        assert captured["circuit"] is Circuit.SHUFFLE_ENCRYPT
        assert captured["witness"]["permutation"] == \
            list(witness.permutation)


class TestRetries:

    def test_recovers_from_transient_failure(self, curve):
        system = FlakyProofSystem(failures=2)
        gate = ProofGate(curve, system, deck_size=2, verify_retries=2)
        assert gate.verify_shuffle("proof", [0] * 27)
        assert system.verify_calls == 3

    def test_retries_exhausted(self, curve):
        system = FlakyProofSystem(failures=3)
        gate = ProofGate(curve, system, deck_size=2, verify_retries=2)
        with pytest.raises(ProofSystemError):
            gate.verify_shuffle("proof", [0] * 27)
        assert system.verify_calls == 3

    def test_rejection_is_not_retried(self, curve):
        system = StaticProofSystem(False)
        gate = ProofGate(curve, system, deck_size=2, verify_retries=5)
        assert gate.verify_shuffle("proof", [0] * 27) is False
        assert system.verify_calls == 1

    def test_no_retries(self, curve):
        gate = ProofGate(curve, FlakyProofSystem(failures=1), deck_size=2,
                         verify_retries=0)
        with pytest.raises(ProofSystemError):
            gate.verify_shuffle("proof", [0] * 27)


class TestDecryptShares:

    def test_share_value_and_proof(self, curve, gate, players):
        keys = players[0].keypair
        c0 = curve.multiplication(4242, curve.generator)
        share, proof = gate.prove_decrypt_share(c0, keys.sk)
        assert share == curve.negation(curve.multiplication(keys.sk, c0))
        assert gate.verify_decrypt_share(proof, c0, keys.pk, share)

    def test_proof_bound_to_player_key(self, curve, gate, players):
        c0 = curve.multiplication(4242, curve.generator)
        share, proof = gate.prove_decrypt_share(c0, players[0].keypair.sk)
        assert not gate.verify_decrypt_share(proof, c0,
                                             players[1].keypair.pk, share)

    def test_proof_bound_to_card(self, curve, gate, players):
        keys = players[0].keypair
        c0 = curve.multiplication(4242, curve.generator)
        other = curve.multiplication(4243, curve.generator)
        share, proof = gate.prove_decrypt_share(c0, keys.sk)
        assert not gate.verify_decrypt_share(proof, other, keys.pk, share)

    def test_off_curve_share(self, curve, gate, players):
        keys = players[0].keypair
        c0 = curve.multiplication(4242, curve.generator)
        _, proof = gate.prove_decrypt_share(c0, keys.sk)
        G = curve.generator
        with pytest.raises(ValidationError):
            gate.verify_decrypt_share(proof, c0, keys.pk,
                                      curve.point(G.x, G.y + 1))
