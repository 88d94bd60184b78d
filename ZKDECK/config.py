# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# config.py
#
# @desc: Game configuration. Values come from environment variables
#        (ZKDECK_*) or fall back to defaults.
#
#        from ZKDECK.config import GameConfig
#        config = GameConfig.from_env()
#        curve = build_curve(config.curve)
# ===================================================================
import os
from dataclasses import dataclass

import fastecdsa.curve as curvelib

from ZKDECK.cards import DECK_SIZE
from ZKDECK.eccwrapper import (BABYJUBJUB, BANDERSNATCH, Fastecdsa,
                               TwistedEdwards)
from ZKDECK.errors import ValidationError

MIN_KEY_BITS = 128

EDWARDS_CURVES = {
    BANDERSNATCH.name: BANDERSNATCH,
    BABYJUBJUB.name: BABYJUBJUB,
}


def get_env(key, default=""):
    """Environment variable key, default if unset"""
    return os.environ.get(key, default)


def get_env_int(key, default=0):
    """Environment variable key as int, default if unset or malformed"""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_float(key, default=0.0):
    """Environment variable key as float, default if unset or malformed"""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def build_curve(name):
    """Curve adapter by name: a twisted Edwards preset or any curve of
    fastecdsa.curve (e.g. secp256k1, P256, brainpoolP256r1)."""
    if name.lower() in EDWARDS_CURVES:
        return TwistedEdwards(EDWARDS_CURVES[name.lower()])
    curve = getattr(curvelib, name, None)
    if not isinstance(curve, curvelib.Curve):
        raise ValidationError("unknown curve: %s" % name)
    return Fastecdsa(curve, name)


@dataclass
class GameConfig:
    """Settings of one game instance."""
    num_players: int = 3
    deck_size: int = DECK_SIZE
    key_bits: int = MIN_KEY_BITS
    curve: str = BANDERSNATCH.name
    verify_retries: int = 2
    share_timeout: float = 30.0
    snarkjs_bin: str = "snarkjs"
    circuits_dir: str = "circuits/build"

    def validate(self):
        if self.num_players < 2:
            raise ValidationError("num_players must be at least 2, got %d"
                                  % self.num_players)
        if self.deck_size != DECK_SIZE:
            raise ValidationError("deck_size must be %d, got %d"
                                  % (DECK_SIZE, self.deck_size))
        if self.key_bits < MIN_KEY_BITS:
            raise ValidationError("key_bits must be at least %d, got %d"
                                  % (MIN_KEY_BITS, self.key_bits))
        if self.verify_retries < 0:
            raise ValidationError("verify_retries must not be negative")
        return self

    @classmethod
    def from_env(cls):
        """Settings from ZKDECK_* environment variables, validated"""
        return cls(
            num_players=get_env_int("ZKDECK_NUM_PLAYERS", 3),
            deck_size=get_env_int("ZKDECK_DECK_SIZE", DECK_SIZE),
            key_bits=get_env_int("ZKDECK_KEY_BITS", MIN_KEY_BITS),
            curve=get_env("ZKDECK_CURVE", BANDERSNATCH.name),
            verify_retries=get_env_int("ZKDECK_VERIFY_RETRIES", 2),
            share_timeout=get_env_float("ZKDECK_SHARE_TIMEOUT", 30.0),
            snarkjs_bin=get_env("ZKDECK_SNARKJS_BIN", "snarkjs"),
            circuits_dir=get_env("ZKDECK_CIRCUITS_DIR", "circuits/build"),
        ).validate()
