# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# shuffle.py
#
# @desc: Shuffle and re-mask a deck of card ciphers under the aggregate
#        key, and encode decks as the field elements the shuffle and
#        decrypt circuits take as public signals.
#
#        new_deck[pi[i]] = (r[i]*G + deck[i].c0, r[i]*pk + deck[i].c1)
#
#        Re-masking uses the randomness of the original index i, then the
#        card moves to pi[i]. The shuffle circuit asserts exactly this
#        statement; both sides have to change together.
# ===================================================================
from collections import namedtuple

from ZKDECK.cards import CipherCard, DECK_SIZE
from ZKDECK.errors import ValidationError

ShuffleWitness = namedtuple("ShuffleWitness", ["permutation", "blinding"])

# c0.X, c0.Y, c0.Z, c1.X, c1.Y, c1.Z
DECK_ROWS = 6


def validate_permutation(permutation, size):
    """Check that permutation is a bijection on [0, size)

    Args:
        permutation (List[int]): permutation to check
        size (int): number of cards
    """
    if len(permutation) != size:
        raise ValidationError("permutation has %d entries, expected %d"
                              % (len(permutation), size))
    if not all(isinstance(x, int) for x in permutation) or \
            sorted(permutation) != list(range(size)):
        raise ValidationError("permutation is not a bijection on [0, %d)"
                              % size)


def validate_blinding(curve, blinding, size):
    """Check that there is one scalar in [1, order) per card"""
    if len(blinding) != size:
        raise ValidationError("blinding has %d scalars, expected %d"
                              % (len(blinding), size))
    for r in blinding:
        if not isinstance(r, int) or not 0 < r < curve.order:
            raise ValidationError("blinding scalar out of range")


def validate_point(curve, point, what="point"):
    if not curve.isoncurve(point):
        raise ValidationError("%s is not on curve %s" % (what, curve.name))


def validate_deck(curve, deck, size=DECK_SIZE):
    """Check deck length and that every cipher consists of curve points

    Args:
        curve (Curve): elliptic curve
        deck (Tuple[CipherCard]): masked cards
        size (int): expected number of cards
    """
    if len(deck) != size:
        raise ValidationError("deck has %d cards, expected %d"
                              % (len(deck), size))
    for i, card in enumerate(deck):
        if len(card) != 2:
            raise ValidationError("card %d is not a (c0, c1) pair" % i)
        validate_point(curve, card[0], "c0 of card %d" % i)
        validate_point(curve, card[1], "c1 of card %d" % i)


def shuffle_encrypt(curve, deck, permutation, blinding, agg_key):
    """Re-mask every card with its own blinding scalar and move it to its
    new position

    Args:
        curve (Curve): elliptic curve
        deck (Tuple[CipherCard]): masked cards
        permutation (List[int]): card i goes to position permutation[i]
        blinding (List[int]): re-masking scalar for card i
        agg_key (Point): aggregate public key

    Returns:
        Tuple[Tuple[CipherCard], ShuffleWitness]: new deck, witness
    """
    size = len(deck)
    validate_deck(curve, deck, size)
    validate_permutation(permutation, size)
    validate_blinding(curve, blinding, size)
    validate_point(curve, agg_key, "aggregate key")

    new_deck = [None] * size
    for i, card in enumerate(deck):
        c0 = curve.addition(curve.multiplication(blinding[i],
                                                 curve.generator), card.c0)
        c1 = curve.addition(curve.multiplication(blinding[i], agg_key),
                            card.c1)
        new_deck[permutation[i]] = CipherCard(c0, c1)

    return tuple(new_deck), ShuffleWitness(tuple(permutation),
                                           tuple(blinding))


# signals ---------------------------------------------------------------------
def deck_to_rows(deck):
    """Split a deck into six coordinate rows c0.X, c0.Y, c0.Z, c1.X, c1.Y,
    c1.Z

    Returns:
        List[List[int]]: 6 rows with len(deck) field elements
    """
    rows = [[] for _ in range(DECK_ROWS)]
    for card in deck:
        for j, value in enumerate(card.c0.coordinates() +
                                  card.c1.coordinates()):
            rows[j].append(value)
    return rows


def deck_to_signals(deck):
    return [value for row in deck_to_rows(deck) for value in row]


def deck_from_signals(curve, signals, size=DECK_SIZE):
    """Rebuild a deck from its row major field elements

    Args:
        curve (Curve): elliptic curve
        signals (List[int]): DECK_ROWS * size field elements
        size (int): number of cards

    Returns:
        Tuple[CipherCard]: deck
    """
    if len(signals) != DECK_ROWS * size:
        raise ValidationError("deck block has %d field elements, expected %d"
                              % (len(signals), DECK_ROWS * size))
    rows = [signals[j * size:(j + 1) * size] for j in range(DECK_ROWS)]
    return tuple(
        CipherCard(curve.point(rows[0][i], rows[1][i], rows[2][i]),
                   curve.point(rows[3][i], rows[4][i], rows[5][i]))
        for i in range(size))


def shuffle_signal_count(size=DECK_SIZE):
    return 3 + 2 * DECK_ROWS * size


def shuffle_public_signals(agg_key, old_deck, new_deck):
    """Public signals of the shuffle circuit: [aggKey, oldDeck, newDeck]

    Returns:
        List[int]: 3 + 12 * len(old_deck) field elements
    """
    return list(agg_key.coordinates()) + deck_to_signals(old_deck) + \
        deck_to_signals(new_deck)


def split_shuffle_signals(curve, signals, size=DECK_SIZE):
    """Inverse of shuffle_public_signals

    Returns:
        Point, Tuple[CipherCard], Tuple[CipherCard]: aggregate key, old
        deck, new deck
    """
    if len(signals) != shuffle_signal_count(size):
        raise ValidationError("shuffle signals have %d entries, expected %d"
                              % (len(signals), shuffle_signal_count(size)))
    block = DECK_ROWS * size
    agg_key = curve.point(*signals[:3])
    old_deck = deck_from_signals(curve, signals[3:3 + block], size)
    new_deck = deck_from_signals(curve, signals[3 + block:], size)
    return agg_key, old_deck, new_deck


def decrypt_public_signals(c0, pk, share):
    """Public signals of the decrypt circuit: [c0, pk, share]"""
    return list(c0.coordinates()) + list(pk.coordinates()) + \
        list(share.coordinates())


def shuffle_witness_input(agg_key, old_deck, new_deck, witness):
    """Input object of the shuffle circuit, values as decimal strings

    Args:
        agg_key (Point): aggregate public key
        old_deck (Tuple[CipherCard]): deck before the shuffle
        new_deck (Tuple[CipherCard]): deck after the shuffle
        witness (ShuffleWitness): permutation and blinding

    Returns:
        Dict: circuit input
    """
    return {
        "pk": [str(v) for v in agg_key.coordinates()],
        "R": [str(r) for r in witness.blinding],
        "permutation": list(witness.permutation),
        "original": [[str(v) for v in row] for row in deck_to_rows(old_deck)],
        "permuted": [[str(v) for v in row] for row in deck_to_rows(new_deck)],
    }
