# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# cards.py
#
# @desc: Card identities and their curve representation. Card i of the
#        canonical ordering is the point (i+1)*G, so every party can
#        rebuild the table without trusting a dealer.
# ===================================================================
import logging
from collections import namedtuple

from ZKDECK.errors import UnknownCardMatch, ValidationError

logger = logging.getLogger(__name__)

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = tuple(range(2, 15))
RANK_NAMES = {11: "J", 12: "Q", 13: "K", 14: "A"}
DECK_SIZE = len(SUITS) * len(RANKS)

CipherCard = namedtuple("CipherCard", ["c0", "c1"])


class Card(namedtuple("Card", ["suit", "rank"])):
    """One of the 52 cards, rank 2..14 with 11=J, 12=Q, 13=K, 14=A"""
    __slots__ = ()

    @property
    def position(self):
        return SUITS.index(self.suit) * len(RANKS) + RANKS.index(self.rank)

    def __str__(self):
        return "%s of %s" % (RANK_NAMES.get(self.rank, str(self.rank)),
                             self.suit)


class UnknownCard:
    """Result of resolving a point that is not in the card table.

    Attributes:
        point (Point): the unmatched point
    """
    __slots__ = ("point",)

    def __init__(self, point):
        self.point = point

    def __eq__(self, other):
        if not isinstance(other, UnknownCard):
            return NotImplemented
        return self.point == other.point

    def __hash__(self):
        return hash(("unknown", self.point))

    def __repr__(self):
        return "UnknownCard(%r)" % (self.point,)


def card_at(index):
    """Card at position index of the canonical ordering"""
    if not 0 <= index < DECK_SIZE:
        raise ValidationError("card index %d out of range" % index)
    return Card(SUITS[index // len(RANKS)], RANKS[index % len(RANKS)])


def init_deck(curve, n=DECK_SIZE):
    """Force card values to curve: plain_deck[i] = (i+1)*G

    Args:
        curve (Curve): elliptic curve
        n (int): number of cards

    Returns:
        Tuple[Point]: plain deck
    """
    if not 0 < n < curve.order:
        raise ValidationError("invalid number of cards: %d" % n)
    return tuple(curve.multiplication(i + 1, curve.generator)
                 for i in range(n))


def init_enc_deck(curve, plain_deck):
    """Encrypt the plain deck with randomness 0: (neutral, point).

    Args:
        curve (Curve): elliptic curve
        plain_deck (Tuple[Point]): card points

    Returns:
        Tuple[CipherCard]: initial deck of the shuffle chain
    """
    return tuple(CipherCard(curve.neutral(), point) for point in plain_deck)


def build_card_map(curve, plain_deck):
    """Map affine card points to cards

    Args:
        curve (Curve): elliptic curve
        plain_deck (Tuple[Point]): card points in canonical order

    Returns:
        Dict[(int, int), Card]: affine point -> card
    """
    if len(plain_deck) != DECK_SIZE:
        raise ValidationError("card map needs %d points, got %d"
                              % (DECK_SIZE, len(plain_deck)))

    card_map = {}
    for i, point in enumerate(plain_deck):
        if not curve.isoncurve(point):
            raise ValidationError("card point %d is not on the curve" % i)
        key = point.affine()
        if key is None or key in card_map:
            raise ValidationError("card point %d is not unique" % i)
        card_map[key] = card_at(i)

    return card_map


class CardResolver:
    """Turns a fully decrypted point into a card.

    Attributes:
        curve (Curve): elliptic curve
        plain_deck (Tuple[Point]): card points
        card_map (Dict[(int, int), Card]): affine point -> card
    """
    def __init__(self, curve, plain_deck=None):
        """
        Args:
            curve (Curve): elliptic curve
            plain_deck (Tuple[Point]): card points, rebuilt if None
        """
        self.curve = curve
        self.plain_deck = plain_deck if plain_deck is not None \
            else init_deck(curve)
        self.card_map = build_card_map(curve, self.plain_deck)

    def resolve(self, point):
        """Look up a point in the card table

        Args:
            point (Point): decrypted card point

        Returns:
            Card or UnknownCard
        """
        affine = point.affine() if point is not None else None
        card = self.card_map.get(affine) if affine is not None else None
        if card is None:
            logger.warning("decrypted point matches no card: %r", point)
            return UnknownCard(point)
        return card

    def require(self, point, slot=None):
        """Like resolve, but an unmatched point raises UnknownCardMatch"""
        card = self.resolve(point)
        if isinstance(card, UnknownCard):
            raise UnknownCardMatch(point, slot)
        return card
