import hashlib
import unittest
from types import SimpleNamespace

from src.common.algorithms import DEFAULT_ALGORITHM, Algorithm, infer, names, resolve
from src.common.errors import AmbiguousLength, UnknownAlgorithm, UnrecognizedLength


class ResolveTests(unittest.TestCase):
    def test_canonical_names_and_aliases(self) -> None:
        self.assertIs(resolve("SHA256"), Algorithm.SHA256)
        self.assertIs(resolve("sha-256"), Algorithm.SHA256)
        self.assertIs(resolve("  Sha_512 "), Algorithm.SHA512)
        self.assertIs(resolve("md5"), Algorithm.MD5)
        self.assertIs(resolve("SHA-1"), Algorithm.SHA1)
        self.assertIs(resolve(Algorithm.SHA384), Algorithm.SHA384)

    def test_unknown_identifier(self) -> None:
        with self.assertRaises(UnknownAlgorithm) as ctx:
            resolve("blake3")
        self.assertIn("blake3", str(ctx.exception))

    def test_default_is_sha256(self) -> None:
        self.assertIs(DEFAULT_ALGORITHM, Algorithm.SHA256)

    def test_names_lists_the_closed_set(self) -> None:
        self.assertEqual(names(), ["MD5", "SHA1", "SHA224", "SHA256", "SHA384", "SHA512"])


class InferTests(unittest.TestCase):
    def test_lengths_map_to_unique_algorithms(self) -> None:
        expected = {
            16: Algorithm.MD5,
            20: Algorithm.SHA1,
            28: Algorithm.SHA224,
            32: Algorithm.SHA256,
            48: Algorithm.SHA384,
            64: Algorithm.SHA512,
        }
        for length, algorithm in expected.items():
            self.assertIs(infer(length), algorithm)

    def test_unrecognized_length(self) -> None:
        with self.assertRaises(UnrecognizedLength):
            infer(31)

    def test_ambiguous_length_fails_loudly(self) -> None:
        rival = SimpleNamespace(canonical_name="SHA3-256", digest_size=32)
        with self.assertRaises(AmbiguousLength) as ctx:
            infer(32, candidates=[Algorithm.SHA256, rival])
        self.assertEqual(ctx.exception.length, 32)
        self.assertIn("SHA3-256", str(ctx.exception))

    def test_digest_sizes_match_hashlib(self) -> None:
        for algorithm in Algorithm:
            digest = algorithm.new()
            digest.update(b"abcdABCD1234")
            self.assertEqual(len(digest.digest()), algorithm.digest_size)
            self.assertEqual(digest.hexdigest(), hashlib.new(algorithm.hashlib_name, b"abcdABCD1234").hexdigest())

    def test_known_vectors(self) -> None:
        vectors = {
            Algorithm.MD5: "bb057481a1b7abc93ad5d70d52e3a55f",
            Algorithm.SHA1: "a9c0f8c056a19fdfd18db386039bdc90e680116c",
            Algorithm.SHA256: "423df0dab6a97c46239d196ad6f610edf5484650e9e7085634045e8b3fc19d0b",
        }
        for algorithm, expected in vectors.items():
            digest = algorithm.new()
            digest.update(b"abcdABCD1234")
            self.assertEqual(digest.hexdigest(), expected)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
