"""
Shared fixtures and fake proof systems for the deck engine tests.

The fakes stand in for the external prover/verifier:
- StaticProofSystem: always True or always False
- DigestProofSystem: proof is a hash of the public signals, so any
  change of a signal makes verification fail
- FlakyProofSystem: raises ProofSystemError a number of times first
"""

import hashlib

import pytest

from ZKDECK.cards import init_deck, init_enc_deck
from ZKDECK.eccwrapper import BANDERSNATCH, TwistedEdwards
from ZKDECK.errors import ProofSystemError
from ZKDECK.proofgate import Circuit, ProofGate, ProofSystem
from ZKDECK.proofs import ChaumPedersenProofSystem, DispatchProofSystem
from ZKDECK.toolbox import Toolbox


class StaticProofSystem(ProofSystem):

    def __init__(self, result=True):
        self.result = result
        self.prove_calls = 0
        self.verify_calls = 0

    def prove(self, circuit, witness, public_inputs):
        self.prove_calls += 1
        return "static-proof"

    def verify(self, circuit, proof, public_inputs):
        self.verify_calls += 1
        return self.result


class DigestProofSystem(ProofSystem):

    @staticmethod
    def _digest(circuit, public_inputs):
        h = hashlib.sha3_256(circuit.value.encode())
        for value in public_inputs:
            h.update(str(value).encode() + b",")
        return h.hexdigest()

    def prove(self, circuit, witness, public_inputs):
        return self._digest(circuit, public_inputs)

    def verify(self, circuit, proof, public_inputs):
        return proof == self._digest(circuit, public_inputs)


class FlakyProofSystem(ProofSystem):

    def __init__(self, failures, inner=None):
        self.failures = failures
        self.inner = inner or StaticProofSystem(True)
        self.verify_calls = 0

    def prove(self, circuit, witness, public_inputs):
        return self.inner.prove(circuit, witness, public_inputs)

    def verify(self, circuit, proof, public_inputs):
        self.verify_calls += 1
        if self.verify_calls <= self.failures:
            raise ProofSystemError("verifier crashed")
        return self.inner.verify(circuit, proof, public_inputs)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def curve():
    return TwistedEdwards(BANDERSNATCH)


@pytest.fixture(scope="session")
def plain_deck(curve):
    return init_deck(curve)


@pytest.fixture(scope="session")
def enc_deck(curve, plain_deck):
    return init_enc_deck(curve, plain_deck)


@pytest.fixture
def proof_system(curve):
    """Digest fake for shuffles, real Chaum-Pedersen for decryption"""
    return DispatchProofSystem({
        Circuit.SHUFFLE_ENCRYPT: DigestProofSystem(),
        Circuit.DECRYPT: ChaumPedersenProofSystem(curve),
    })


@pytest.fixture
def gate(curve, proof_system):
    return ProofGate(curve, proof_system, deck_size=52)


@pytest.fixture
def toolbox(curve, gate):
    return Toolbox(curve, gate)


@pytest.fixture
def players(toolbox):
    return [toolbox.key_generate(i) for i in range(3)]


@pytest.fixture
def agg_key(curve, players):
    return curve.summation(p.keypair.pk for p in players)
