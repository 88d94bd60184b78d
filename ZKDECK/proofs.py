# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# proofs.py
#
# @desc: Concrete proof systems. Non-interactive Schnorr proof of
#        knowledge (key registration) and Chaum-Pedersen proof of equal
#        discrete logarithms (decryption shares) with Fiat-Shamir
#        challenges, and an adapter that runs the snarkjs command line
#        prover/verifier on compiled Groth16 circuits.
# ===================================================================
import json
import logging
import os
import subprocess
import tempfile
from collections import namedtuple

from ZKDECK.errors import ProofSystemError, ValidationError
from ZKDECK.proofgate import Circuit, ProofSystem

logger = logging.getLogger(__name__)


def _challenge(curve, *points):
    """Hash affine coordinates of points to a scalar"""
    values = []
    for point in points:
        affine = point.affine()
        values.extend(affine if affine is not None else (0, 0))
    return curve.rand_gen.hash_to_scalar(*values)


def _is_scalar_pair(curve, c, s):
    return isinstance(c, int) and isinstance(s, int) and \
        0 <= c < curve.order and 0 <= s < curve.order


# pok -------------------------------------------------------------------------
class PokProver:
    """Prove knowledge of secret with public = secret*generator"""
    def __init__(self, curve, generator, public, secret):
        self.curve = curve
        self.generator = generator
        self.public = public
        self.secret = secret

    def pok_nizk(self):
        """
        Returns:
            List[int]: challenge c and response s
        """
        k = self.curve.rand_gen.get_random_value()
        commitment = self.curve.multiplication(k, self.generator)
        c = _challenge(self.curve, self.generator, self.public, commitment)
        s = (k + c * self.secret) % self.curve.order
        return [c, s]


class PokVerifier:
    def __init__(self, curve, generator, public):
        self.curve = curve
        self.generator = generator
        self.public = public

    def pok_nizk(self, c, s):
        """
        Args:
            c (int): challenge
            s (int): response

        Returns:
            bool: True if s*generator - c*public hashes back to c
        """
        if not _is_scalar_pair(self.curve, c, s):
            return False
        commitment = self.curve.subtraction(
            self.curve.multiplication(s, self.generator),
            self.curve.multiplication(c, self.public))
        return c == _challenge(self.curve, self.generator, self.public,
                               commitment)


# peq -------------------------------------------------------------------------
class PeqProver:
    """Prove log_generator(public) = log_base(value) = secret"""
    def __init__(self, curve, generator, public, base, value, secret):
        self.curve = curve
        self.generator = generator
        self.public = public
        self.base = base
        self.value = value
        self.secret = secret

    def peq_nizk(self):
        """
        Returns:
            List[int]: challenge c and response s
        """
        k = self.curve.rand_gen.get_random_value()
        commitment_a = self.curve.multiplication(k, self.generator)
        commitment_b = self.curve.multiplication(k, self.base)
        c = _challenge(self.curve, self.generator, self.public, self.base,
                       self.value, commitment_a, commitment_b)
        s = (k + c * self.secret) % self.curve.order
        return [c, s]


class PeqVerifier:
    def __init__(self, curve, generator, public, base, value):
        self.curve = curve
        self.generator = generator
        self.public = public
        self.base = base
        self.value = value

    def peq_nizk(self, c, s):
        """
        Args:
            c (int): challenge
            s (int): response

        Returns:
            bool: True if both commitments hash back to c
        """
        if not _is_scalar_pair(self.curve, c, s):
            return False
        commitment_a = self.curve.subtraction(
            self.curve.multiplication(s, self.generator),
            self.curve.multiplication(c, self.public))
        commitment_b = self.curve.subtraction(
            self.curve.multiplication(s, self.base),
            self.curve.multiplication(c, self.value))
        return c == _challenge(self.curve, self.generator, self.public,
                               self.base, self.value, commitment_a,
                               commitment_b)


class ChaumPedersenProofSystem(ProofSystem):
    """Native DECRYPT circuit: share = -sk*c0 and pk = sk*G, shown as
    DLEQ(G, pk, c0, -share). Proofs are (c, s) pairs.

    Attributes:
        curve (Curve): elliptic curve
    """
    def __init__(self, curve):
        self.curve = curve

    def _statement(self, circuit, public_inputs):
        if circuit is not Circuit.DECRYPT:
            raise ProofSystemError("circuit %s is not supported" % circuit)
        if len(public_inputs) != 9:
            raise ValidationError("decrypt signals have %d entries, expected 9"
                                  % len(public_inputs))
        c0 = self.curve.point(*public_inputs[0:3])
        pk = self.curve.point(*public_inputs[3:6])
        share = self.curve.point(*public_inputs[6:9])
        return c0, pk, self.curve.negation(share)

    def prove(self, circuit, witness, public_inputs):
        c0, pk, value = self._statement(circuit, public_inputs)
        prover = PeqProver(self.curve, self.curve.generator, pk, c0, value,
                           int(witness["sk"]))
        return tuple(prover.peq_nizk())

    def verify(self, circuit, proof, public_inputs):
        c0, pk, value = self._statement(circuit, public_inputs)
        if not all(self.curve.isoncurve(P) for P in (c0, pk, value)):
            return False
        try:
            c, s = proof
        except (TypeError, ValueError):
            return False
        verifier = PeqVerifier(self.curve, self.curve.generator, pk, c0,
                               value)
        return verifier.peq_nizk(c, s)


# snarkjs ---------------------------------------------------------------------
CircuitArtifacts = namedtuple("CircuitArtifacts", ["wasm", "zkey", "vkey"])


class SnarkjsProofSystem(ProofSystem):
    """Groth16 proofs through the snarkjs command line tool.

    Attributes:
        artifacts (Dict[Circuit, CircuitArtifacts]): compiled circuits
        binary (str): snarkjs executable
        timeout (float): seconds per snarkjs call, None for no limit
    """
    def __init__(self, artifacts, binary="snarkjs", timeout=None):
        self.artifacts = artifacts
        self.binary = binary
        self.timeout = timeout

    @classmethod
    def from_directory(cls, circuits_dir, binary="snarkjs", timeout=None):
        """Find artifacts in a circom build directory laid out as
        <dir>/<name>/<name>_js/<name>.wasm, <dir>/<name>/<name>.zkey and
        <dir>/<name>/verification_key.json
        """
        artifacts = {}
        for circuit in Circuit:
            name = circuit.value
            base = os.path.join(circuits_dir, name)
            artifacts[circuit] = CircuitArtifacts(
                wasm=os.path.join(base, name + "_js", name + ".wasm"),
                zkey=os.path.join(base, name + ".zkey"),
                vkey=os.path.join(base, "verification_key.json"))
        return cls(artifacts, binary, timeout)

    def _artifacts(self, circuit):
        try:
            artifacts = self.artifacts[circuit]
        except KeyError:
            raise ProofSystemError("no artifacts for circuit %s"
                                   % circuit.value) from None
        for path in artifacts:
            if not os.path.isfile(path):
                raise ProofSystemError("missing circuit artifact %s" % path)
        return artifacts

    def _run(self, args, cwd):
        logger.debug("running %s %s", self.binary, " ".join(args[:2]))
        try:
            return subprocess.run([self.binary] + args, cwd=cwd,
                                  capture_output=True, text=True,
                                  timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProofSystemError("%s failed: %s" % (self.binary, e)) from e

    @staticmethod
    def _write_json(path, data):
        with open(path, "w") as f:
            json.dump(data, f)

    @staticmethod
    def _read_json(path):
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise ProofSystemError("unreadable snarkjs output %s: %s"
                                   % (path, e)) from e

    def prove(self, circuit, witness, public_inputs):
        artifacts = self._artifacts(circuit)
        with tempfile.TemporaryDirectory() as tmp:
            input_file = os.path.join(tmp, "input.json")
            proof_file = os.path.join(tmp, "proof.json")
            public_file = os.path.join(tmp, "public.json")
            self._write_json(input_file, witness)

            result = self._run(["groth16", "fullprove", input_file,
                                artifacts.wasm, artifacts.zkey, proof_file,
                                public_file], tmp)
            if result.returncode != 0:
                raise ProofSystemError("snarkjs fullprove exited with %d: %s"
                                       % (result.returncode,
                                          result.stderr.strip()))
            proof = self._read_json(proof_file)
            produced = self._read_json(public_file)

        try:
            produced = [int(x) for x in produced]
        except (TypeError, ValueError) as e:
            raise ProofSystemError("malformed public signals: %s" % e) from e
        if produced != [int(x) for x in public_inputs]:
            raise ProofSystemError("circuit %s produced other public signals "
                                   "than requested" % circuit.value)
        return proof

    def verify(self, circuit, proof, public_inputs):
        artifacts = self._artifacts(circuit)
        with tempfile.TemporaryDirectory() as tmp:
            proof_file = os.path.join(tmp, "proof.json")
            public_file = os.path.join(tmp, "public.json")
            self._write_json(proof_file, proof)
            self._write_json(public_file, [str(x) for x in public_inputs])

            result = self._run(["groth16", "verify", artifacts.vkey,
                                public_file, proof_file], tmp)

        output = result.stdout + result.stderr
        if result.returncode == 0 and "OK" in output:
            return True
        if "Invalid proof" in output:
            return False
        raise ProofSystemError("snarkjs verify exited with %d: %s"
                               % (result.returncode, output.strip()))


class DispatchProofSystem(ProofSystem):
    """Route each circuit to its own proof system

    Attributes:
        systems (Dict[Circuit, ProofSystem]): proof system per circuit
    """
    def __init__(self, systems):
        self.systems = dict(systems)

    def _system(self, circuit):
        try:
            return self.systems[circuit]
        except KeyError:
            raise ProofSystemError("no proof system for circuit %s"
                                   % circuit.value) from None

    def prove(self, circuit, witness, public_inputs):
        return self._system(circuit).prove(circuit, witness, public_inputs)

    def verify(self, circuit, proof, public_inputs):
        return self._system(circuit).verify(circuit, proof, public_inputs)
