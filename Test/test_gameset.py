"""
Tests for a complete game instance.

Covers:
- Three player game: registration, shuffle chain, dealing, reveals
- Registration and dealing errors
- A failed last registration leaves the game open for a retry
- A card can only be revealed at one slot
- Independent games running in parallel

Run with: pytest Test/test_gameset.py -v
"""

import threading
from unittest import mock

import pytest

from ZKDECK.cards import Card, card_at
from ZKDECK.config import GameConfig
from ZKDECK.errors import (InvalidStateError, MissingShare, ProofRejected,
                           UnknownCardMatch, ValidationError)
from ZKDECK.gameset import TABLE, GamePhase, GameSet
from ZKDECK.proofs import SnarkjsProofSystem
from ZKDECK.random_generator import RandomGenerator


@pytest.fixture
def game(proof_system):
    return GameSet(GameConfig(num_players=3), system=proof_system)


@pytest.fixture
def keys(game):
    toolbox = game.toolbox()
    return [toolbox.key_generate(i) for i in range(3)]


def seeded_perms(seed):
    return [RandomGenerator.get_random_permutation_seed(52, seed + i)
            for i in range(3)]


def register_all(game, keys):
    for k in keys:
        assert game.register_player(k.keypair.pk, k.proof) == k.index


def shuffle_all(game, perms):
    toolbox = game.toolbox()
    for player in game.player_order:
        submission = toolbox.shuffle_and_prove(game.chain.deck,
                                               game.public_key, player,
                                               permutation=perms[player])
        game.submit_shuffle(submission)


def card_in_slot(perms, order, slot):
    """Canonical card that the composed shuffle moved to slot"""
    for i in range(52):
        position = i
        for player in order:
            position = perms[player][position]
        if position == slot:
            return card_at(i)


def reveal_own(game, keys, slot, owner):
    toolbox = game.toolbox()
    game.open_reveal(slot)
    for k in keys:
        if k.index != owner:
            game.submit_share(toolbox.dec_generate(k, game.cards_shuffled,
                                                   slot))
    partial = game.partially_decrypted(slot)
    point = toolbox.dec_finalize(keys[owner], game.cards_shuffled[slot],
                                 partial)
    return game.record_reveal(slot, point)


# =============================================================================
# End to end
# =============================================================================

class TestThreePlayerGame:

    def test_full_game(self, game, keys):
        perms = seeded_perms(2024)
        register_all(game, keys)
        assert game.phase is GamePhase.SHUFFLING
        assert game.public_key == game.curve.summation(
            k.keypair.pk for k in keys)

        shuffle_all(game, perms)
        assert game.phase is GamePhase.DEALING
        assert game.chain.is_frozen

        hands = game.deal_hands(2)
        assert hands == {0: [0, 1], 1: [2, 3], 2: [4, 5]}
        assert game.cards_owner[:6] == [0, 0, 1, 1, 2, 2]

        for owner, slots in hands.items():
            for slot in slots:
                card = reveal_own(game, keys, slot, owner)
                assert card == card_in_slot(perms, (0, 1, 2), slot)
                assert game.cards_unmasked[slot] == card

        dealt = [game.cards_unmasked[s] for s in range(6)]
        assert len(set(dealt)) == 6

    def test_table_cards(self, game, keys):
        perms = seeded_perms(7)
        register_all(game, keys)
        shuffle_all(game, perms)
        game.deal_hands(2)
        flop = game.deal_table(3)
        assert flop == [6, 7, 8]
        assert all(game.cards_owner[s] == TABLE for s in flop)

        toolbox = game.toolbox()
        for slot in flop:
            game.open_reveal(slot)
            for k in keys:
                game.submit_share(toolbox.dec_generate(
                    k, game.cards_shuffled, slot))
            card = game.reveal_public(slot)
            assert card == card_in_slot(perms, (0, 1, 2), slot)
            assert isinstance(card, Card)

    def test_custom_shuffle_order(self, proof_system, keys):
        game = GameSet(GameConfig(num_players=3), system=proof_system,
                       player_order=[1, 2, 0])
        perms = seeded_perms(55)
        register_all(game, keys)
        shuffle_all(game, perms)
        hands = game.deal_hands(1)
        assert list(hands) == [1, 2, 0]
        assert hands[1] == [0]
        card = reveal_own(game, keys, 0, 1)
        assert card == card_in_slot(perms, (1, 2, 0), 0)

    def test_wait_for_missing_share(self, proof_system, keys):
        game = GameSet(GameConfig(num_players=3, share_timeout=0.05),
                       system=proof_system)
        register_all(game, keys)
        shuffle_all(game, seeded_perms(3))
        game.deal_hands(1)
        game.open_reveal(0)
        game.submit_share(game.toolbox().dec_generate(
            keys[1], game.cards_shuffled, 0))
        with pytest.raises(MissingShare) as exc:
            game.partially_decrypted(0, wait=True)
        assert exc.value.missing == [2]

    def test_wrong_point_is_not_recorded(self, game, keys):
        register_all(game, keys)
        shuffle_all(game, seeded_perms(11))
        game.deal_hands(1)
        game.open_reveal(0)
        toolbox = game.toolbox()
        for k in keys[1:]:
            game.submit_share(toolbox.dec_generate(k, game.cards_shuffled, 0))
        partial = game.partially_decrypted(0)
        # finalized with another player's key
        point = toolbox.dec_finalize(keys[1], game.cards_shuffled[0], partial)
        with pytest.raises(UnknownCardMatch):
            game.record_reveal(0, point)
        assert game.cards_unmasked[0] is None

    def test_card_revealed_twice_is_rejected(self, game, keys):
        register_all(game, keys)
        shuffle_all(game, seeded_perms(13))
        game.deal_hands(2)
        first = reveal_own(game, keys, 0, 0)

        toolbox = game.toolbox()
        game.open_reveal(1)
        for k in keys[1:]:
            game.submit_share(toolbox.dec_generate(k, game.cards_shuffled, 1))
        # slot 1 claims the card already shown at slot 0
        with pytest.raises(ValidationError):
            game.record_reveal(1, game.cards_raw[first.position])
        assert game.cards_unmasked[1] is None

        partial = game.partially_decrypted(1)
        point = toolbox.dec_finalize(keys[0], game.cards_shuffled[1], partial)
        second = game.record_reveal(1, point)
        assert second != first
        assert game.cards_unmasked[:2] == [first, second]


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:

    def test_indices_in_order(self, game, keys):
        assert game.register_player(keys[0].keypair.pk, keys[0].proof) == 0
        assert game.register_player(keys[1].keypair.pk, keys[1].proof) == 1
        assert game.phase is GamePhase.REGISTRATION
        assert game.chain is None

    def test_duplicate_key(self, game, keys):
        game.register_player(keys[0].keypair.pk, keys[0].proof)
        with pytest.raises(ValidationError):
            game.register_player(keys[0].keypair.pk, keys[0].proof)

    def test_bad_proof(self, game, keys):
        with pytest.raises(ProofRejected):
            game.register_player(keys[0].keypair.pk, keys[1].proof)
        assert game.public_keys == {}

    def test_malformed_proof(self, game, keys):
        with pytest.raises(ValidationError):
            game.register_player(keys[0].keypair.pk, "proof")

    def test_off_curve_key(self, game, keys):
        G = game.curve.generator
        with pytest.raises(ValidationError):
            game.register_player(game.curve.point(G.x, G.y + 1),
                                 keys[0].proof)

    def test_extra_player(self, game, keys):
        register_all(game, keys)
        extra = game.toolbox().key_generate(3)
        with pytest.raises(InvalidStateError):
            game.register_player(extra.keypair.pk, extra.proof)

    def test_invalid_player_order(self, proof_system):
        with pytest.raises(ValidationError):
            GameSet(GameConfig(num_players=3), system=proof_system,
                    player_order=[0, 0, 1])
        with pytest.raises(ValidationError):
            GameSet(GameConfig(num_players=3), system=proof_system,
                    player_order=[0, 1])

    def test_failed_last_registration_keeps_state(self, game, keys):
        game.register_player(keys[0].keypair.pk, keys[0].proof)
        game.register_player(keys[1].keypair.pk, keys[1].proof)
        with mock.patch("ZKDECK.gameset.DeckChain",
                        side_effect=ValidationError("chain refused")):
            with pytest.raises(ValidationError):
                game.register_player(keys[2].keypair.pk, keys[2].proof)
        assert len(game.public_keys) == 2
        assert game.public_key is None
        assert game.chain is None
        assert game.phase is GamePhase.REGISTRATION

        assert game.register_player(keys[2].keypair.pk, keys[2].proof) == 2
        assert game.phase is GamePhase.SHUFFLING
        assert game.chain.expected_player == 0


# =============================================================================
# Dealing
# =============================================================================

class TestDealing:

    def test_deal_before_freeze(self, game, keys):
        register_all(game, keys)
        with pytest.raises(InvalidStateError):
            game.deal_hands(2)
        with pytest.raises(InvalidStateError):
            game.cards_shuffled

    def test_shuffle_before_registration(self, game, keys):
        submission = game.toolbox().shuffle_and_prove(
            game.cards_masked, keys[0].keypair.pk, 0)
        with pytest.raises(InvalidStateError):
            game.submit_shuffle(submission)

    def test_not_enough_cards(self, game, keys):
        register_all(game, keys)
        shuffle_all(game, seeded_perms(1))
        with pytest.raises(ValidationError):
            game.deal_hands(18)
        assert game.deck_position == 0
        game.deal_hands(17)
        with pytest.raises(ValidationError):
            game.deal_table(2)
        assert game.deal_table(1) == [51]

    def test_open_undealt_slot(self, game, keys):
        register_all(game, keys)
        shuffle_all(game, seeded_perms(1))
        with pytest.raises(InvalidStateError):
            game.open_reveal(0)

    def test_reveal_before_freeze(self, game):
        with pytest.raises(InvalidStateError):
            game.open_reveal(0)


# =============================================================================
# Construction and isolation
# =============================================================================

class TestGameSet:

    def test_default_proof_system_is_snarkjs(self, tmp_path):
        config = GameConfig(circuits_dir=str(tmp_path), snarkjs_bin="sj")
        game = GameSet(config)
        assert isinstance(game.gate.system, SnarkjsProofSystem)
        assert game.gate.system.binary == "sj"

    def test_invalid_config(self, proof_system):
        with pytest.raises(ValidationError):
            GameSet(GameConfig(num_players=1), system=proof_system)

    def test_parallel_games(self, proof_system):
        results, errors = {}, []

        def play(seed):
            try:
                game = GameSet(GameConfig(num_players=3),
                               system=proof_system)
                toolbox = game.toolbox()
                keys = [toolbox.key_generate(i) for i in range(3)]
                perms = seeded_perms(seed)
                register_all(game, keys)
                shuffle_all(game, perms)
                game.deal_hands(1)
                card = reveal_own(game, keys, 0, 0)
                results[seed] = (card, card_in_slot(perms, (0, 1, 2), 0))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=play, args=(seed,))
                   for seed in (100, 200)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        for card, expected in results.values():
            assert card == expected
