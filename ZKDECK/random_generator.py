# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# random_generator.py
#
# @desc: Random scalars and permutations for shuffling and masking
#        cards, key generation and Fiat-Shamir challenges.
# ===================================================================
import random
import secrets
import hashlib


class RandomGenerator:
    """Class for different random values and permutations

    Attributes:
        order (int): order of the elliptic curve subgroup
    """

    def __init__(self, order):
        """
        Args:
            order (int): order of the elliptic curve subgroup
        """
        self.order = order

    def get_random_value(self):
        """Get one random value in range 1 to order- 1

        Returns:
            int: random value in range 1 to order - 1
        """
        return 1 + secrets.randbelow(self.order-1)

    def get_random_value_bits(self, bits):
        """Get one random value in range 1 to min(2^bits, order) - 1, used
        as secret key with the given security parameter

        Args:
            bits (int): bit length of the value

        Returns:
            int: random value
        """
        bound = min(1 << bits, self.order)
        return 1 + secrets.randbelow(bound - 1)

    @staticmethod
    def get_random_value_range(x, y):
        """Get one random value in range x to y-1

        Args:
            x (int): lower bound
            y (int): upper bound

        Returns:
            int: value from [x,y)
        """
        return x + secrets.randbelow(y-x)

    def get_random_array(self, size):
        """Get a list with size random values between 1 and order-1

        Args:
            size (int): number of random values

        Returns:
            List[int]: list with random value
        """
        return [self.get_random_value() for _ in range(size)]

    def get_random_array_seed(self, size, seed):
        """Get a list with size values between 1 and order-1 from a PRNG
        seeded with seed. Only for reproducible test vectors.

        Args:
            size (int): number of random values
            seed (int): seed for PRNG

        Returns:
            List[int]: list with pseudo random values
        """
        rng = random.Random(seed)
        return [rng.randint(1, self.order - 1) for _ in range(size)]

    def get_random_permutation(self, size, array=None):
        """Permute an array randomly with fisher-yates algorithm,
        if no array is given as argument, array = [0,1,...,size-1]

        Args:
            size (int): number of random values
            array (List): array to be permuted

        Returns:
            List: permuted array
        """
        if array is None:
            array = list(range(0, size))

        for i in range(size-1):
            j = self.get_random_value_range(i, size)
            array[i], array[j] = array[j], array[i]

        return array

    @staticmethod
    def get_random_permutation_seed(size, seed, array=None):
        """Permute an array by seed with fisher-yates algorithm,
        if no array is given as argument, array = [0,1,...,size-1]

        Args:
            size (int): number of random values
            seed (int): seed for PRNG
            array (List): array to be permuted

        Returns:
            List: permuted array
        """
        rng = random.Random(seed)

        if array is None:
            array = list(range(0, size))

        for i in range(size-1):
            j = rng.randint(i, size-1)
            array[i], array[j] = array[j], array[i]

        return array

    def hash_to_scalar(self, *args):
        """Fiat-Shamir challenge: SHA3-256 over the length prefixed big
        endian encoding of args, reduced modulo order.

        Args:
            *args (int): non negative inputs for the hash function

        Returns:
            int: challenge in range 0 to order - 1
        """
        digest = hashlib.sha3_256()
        for arg in args:
            length = max(1, (arg.bit_length() + 7) // 8)
            digest.update(length.to_bytes(4, "big"))
            digest.update(arg.to_bytes(length, "big"))

        return int.from_bytes(digest.digest(), "big") % self.order
