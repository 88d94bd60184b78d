# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# eccwrapper.py
#
# @desc: Elliptic curve group used by the deck engine. Points are kept
#        in projective form and compared by their affine form. Two
#        backends share one interface: twisted Edwards curves
#        (Bandersnatch, Baby Jubjub) in pure Python and short
#        Weierstrass curves through the fastecdsa library.
# ===================================================================
from collections import namedtuple
from functools import reduce

from fastecdsa.point import Point as FastecdsaPoint

from ZKDECK import random_generator
from ZKDECK.errors import ValidationError


class Point:
    """Elliptic curve point in projective coordinates (X : Y : Z).

    Equality and hashing use the affine form (X/Z, Y/Z), so two
    representations of the same point compare equal.

    Attributes:
        x (int): projective X coordinate
        y (int): projective Y coordinate
        z (int): projective Z coordinate
        p (int): prime of the base field
    """
    __slots__ = ("x", "y", "z", "p")

    def __init__(self, x, y, z, p):
        self.x = x % p
        self.y = y % p
        self.z = z % p
        self.p = p
        if self.x == 0 and self.y == 0 and self.z == 0:
            raise ValidationError("(0 : 0 : 0) is not a projective point")

    def affine(self):
        """Affine coordinates of the point

        Returns:
            (int, int) or None: (X/Z, Y/Z), None for the point at infinity
        """
        if self.z == 0:
            return None
        inv = pow(self.z, -1, self.p)
        return self.x * inv % self.p, self.y * inv % self.p

    def coordinates(self):
        return self.x, self.y, self.z

    def __eq__(self, other):
        """Compare two points by their affine form.

        Args:
            other (Point): second elliptic curve point

        Returns:
            bool: True if both represent the same point, False else
        """
        if not isinstance(other, Point):
            # don't attempt to compare against unrelated types
            return NotImplemented
        if self.p != other.p:
            return False

        p = self.p
        return ((self.x * other.z - other.x * self.z) % p == 0 and
                (self.y * other.z - other.y * self.z) % p == 0)

    def __hash__(self):
        affine = self.affine()
        if affine is None:
            return hash((self.p, "infinity"))
        return hash((self.p,) + affine)

    def __repr__(self):
        return "Point(x=%d, y=%d, z=%d)" % (self.x, self.y, self.z)


class Curve:
    """Curve group capability used by every other module.

    Attributes:
        name (str): curve name
        p (int): prime of the base field
        order (int): order of the subgroup generated by the base point
        generator (Point): the base point
        rand_gen (RandomGenerator): random scalars in the subgroup
    """
    name = None
    p = None
    order = None
    generator = None
    rand_gen = None

    def __init__(self):
        raise NotImplementedError('Abstract method __init__')

    def neutral(self):
        raise NotImplementedError('Abstract method neutral')

    def addition(self, P, Q):
        raise NotImplementedError('Abstract method addition')

    def multiplication(self, k, P):
        raise NotImplementedError('Abstract method multiplication')

    def negation(self, P):
        raise NotImplementedError('Abstract method negation')

    def isoncurve(self, P):
        raise NotImplementedError('Abstract method isoncurve')

    def subtraction(self, P, Q):
        """Subtract two elliptic curve points P and Q

        Args:
            P (Point): elliptic curve point
            Q (Point): elliptic curve point

        Returns:
            P-Q (Point)
        """
        return self.addition(P, self.negation(Q))

    def summation(self, points):
        """Add up a sequence of points, neutral element if empty"""
        return reduce(self.addition, points, self.neutral())

    def point(self, x, y, z=1):
        """Build a point of this curve from raw coordinates"""
        return Point(x, y, z, self.p)

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, self.name)


EdwardsParams = namedtuple(
    "EdwardsParams", ["name", "p", "a", "d", "gx", "gy", "order", "cofactor"])

# Twisted Edwards curve over the BLS12-381 scalar field.
BANDERSNATCH = EdwardsParams(
    name="bandersnatch",
    p=52435875175126190479447740508185965837690552500527637822603658699938581184513,
    a=-5,
    d=45022363124591815672509500913686876175488063829319466900776701791074614335719,
    gx=0x29c132cc2c0b34c5743711777bbe42f32b79c022ad998465e1e71866a252ae18,
    gy=0x2a6c669eda123e0f157d8b50badcd586358cad81eee464605e3167b6cc974166,
    order=13108968793781547619861935127046491459309155893440570251786403306729687672801,
    cofactor=4)

# Twisted Edwards curve over the BN254 scalar field, base point Base8.
BABYJUBJUB = EdwardsParams(
    name="babyjubjub",
    p=21888242871839275222246405745257275088548364400416034343698204186575808495617,
    a=168700,
    d=168696,
    gx=5299619240641551281634865583518297030282874472190772894086521144482721001553,
    gy=16950150798460657717958625567821834550301663161624707787222815936182638968203,
    order=2736030358979909402780800718157159386076813972158567259200215660948447373041,
    cofactor=8)


class TwistedEdwards(Curve):
    """Twisted Edwards curve a*x^2 + y^2 = 1 + d*x^2*y^2 in projective
    coordinates, unified addition law (add-2008-bbjlp).

    Attributes:
        a (int): curve constant a
        d (int): curve constant d
        cofactor (int): cofactor of the prime order subgroup
    """
    def __init__(self, params):
        """
        Args:
            params (EdwardsParams): curve constants
        """
        self.name = params.name
        self.p = params.p
        self.a = params.a % params.p
        self.d = params.d % params.p
        self.order = params.order
        self.cofactor = params.cofactor
        self.generator = Point(params.gx, params.gy, 1, params.p)
        self.rand_gen = random_generator.RandomGenerator(self.order)

    def neutral(self):
        return Point(0, 1, 1, self.p)

    def addition(self, P, Q):
        """Add two elliptic curve points P and Q

        Args:
            P (Point): elliptic curve point
            Q (Point): elliptic curve point

        Returns:
            P+Q (Point)
        """
        p = self.p
        A = P.z * Q.z % p
        B = A * A % p
        C = P.x * Q.x % p
        D = P.y * Q.y % p
        E = self.d * C * D % p
        F = (B - E) % p
        G = (B + E) % p
        x3 = A * F * ((P.x + P.y) * (Q.x + Q.y) - C - D) % p
        y3 = A * G * (D - self.a * C) % p
        z3 = F * G % p
        return Point(x3, y3, z3, p)

    def multiplication(self, k, P):
        """Multiply a elliptic curve point P by a integer k

        Args:
            k (int): integer, reduced modulo the subgroup order
            P (Point): elliptic curve point

        Returns:
            k*P (Point)
        """
        k %= self.order
        result = self.neutral()
        for bit in bin(k)[2:]:
            result = self.addition(result, result)
            if bit == "1":
                result = self.addition(result, P)
        return result

    def negation(self, P):
        """Negate elliptic curve point P

        Args:
            P (Point): elliptic curve point

        Returns:
            -P (Point)
        """
        return Point(-P.x, P.y, P.z, self.p)

    def isoncurve(self, P):
        """Check if point P satisfies the projective curve equation
        (a*X^2 + Y^2)*Z^2 = Z^4 + d*X^2*Y^2

        Args:
            P (Point): elliptic curve point

        Returns:
            True if point is on curve, False else
        """
        if not isinstance(P, Point) or P.p != self.p or P.z == 0:
            return False
        p = self.p
        xx = P.x * P.x % p
        yy = P.y * P.y % p
        zz = P.z * P.z % p
        left = (self.a * xx + yy) * zz % p
        right = (zz * zz + self.d * xx * yy) % p
        return left == right


class Fastecdsa(Curve):
    """Wrapper class for fastecdsa library. Points are affine inside
    fastecdsa and carry Z = 1 here; the point at infinity is (0 : 1 : 0).

    Attributes:
        _curve: curve object from fastecdsa
    """
    def __init__(self, curve, name="fastecdsa"):
        """
        Args:
            curve: curve object from fastecdsa
            name (str): curve name, e.g. the fastecdsa.curve attribute
        """
        self._curve = curve
        self.name = name
        self.p = curve.p
        self.order = curve.q
        self.generator = Point(curve.gx, curve.gy, 1, curve.p)
        self.rand_gen = random_generator.RandomGenerator(self.order)

    def neutral(self):
        return Point(0, 1, 0, self.p)

    def multiplication(self, k, P):
        """Multiply a elliptic curve point P by a integer k

        Args:
            k (int): integer, reduced modulo the subgroup order
            P (Point): elliptic curve point

        Returns:
            k*P (Point)
        """
        k %= self.order
        if k == 0 or P.z == 0:
            return self.neutral()
        product = k * self.point_to_fastecdsa(P)
        return self.fastecdsa_to_point(product)

    def addition(self, P, Q):
        """Add two elliptic curve points P and Q

        Args:
            P (Point): elliptic curve point
            Q (Point): elliptic curve point

        Returns:
            P+Q (Point)
        """
        # fastecdsa only sees finite points
        if P.z == 0:
            return Q
        if Q.z == 0:
            return P
        sum1 = self.point_to_fastecdsa(P)
        sum2 = self.point_to_fastecdsa(Q)
        if sum1.x == sum2.x and sum1.y != sum2.y:
            return self.neutral()
        return self.fastecdsa_to_point(sum1 + sum2)

    def negation(self, P):
        """Negate elliptic curve point P

        Args:
            P (Point): elliptic curve point

        Returns:
            -P (Point)
        """
        if P.z == 0:
            return self.neutral()
        return Point(P.x, -P.y, P.z, self.p)

    def isoncurve(self, P):
        """Check if point P is on curve _curve

        Args:
            P (Point): elliptic curve point

        Returns:
            True if point is on curve, False else
        """
        if not isinstance(P, Point) or P.p != self.p:
            return False
        if P.z == 0:
            return P.x == 0
        return self._curve.is_point_on_curve(P.affine())

    def point_to_fastecdsa(self, P):
        """Transform Point to fastecdsa point

        Args:
            P (Point): elliptic curve point

        Returns:
            fastecdsa point
        """
        if P.z == 0:
            raise ValidationError("point at infinity has no affine form")
        if not self.isoncurve(P):
            raise ValidationError("point is not on curve %s" % self.name)
        x, y = P.affine()
        return FastecdsaPoint(x, y, self._curve)

    def fastecdsa_to_point(self, Q):
        """Transform fastecdsa point to Point

        Args:
            Q: fastecdsa point

        Returns:
            Point
        """
        return Point(Q.x, Q.y, 1, self.p)
