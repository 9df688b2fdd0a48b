import unittest
import tempfile
import os
import io
import sys
import random
import shutil
from contextlib import redirect_stdout, redirect_stderr
from fractions import Fraction
from itertools import product

from bitio import BitInputStream, BitOutputStream, EOF
from format import (HuffConfig, DEFAULT_CONFIG, PSEUDO_EOF, HUFF_TREE,
                    MalformedHeaderError, TruncatedStreamError, DegenerateAlphabetError)
from huffman import HuffmanNode, HuffmanTree, HuffmanEncoder, count_frequencies
from compressor import HuffProcessor, compress_data, decompress_data
from huffer import Huffer, default_compressed_path, default_decompressed_path
from main import main


def bit_input(data: bytes) -> BitInputStream:
    return BitInputStream(io.BytesIO(data))


def counts_from_weights(weights):
    counts = [0] * (DEFAULT_CONFIG.alph_size + 1)
    for value, weight in enumerate(weights):
        counts[value] = weight
    return counts


def min_prefix_code_cost(weights):
    # brute force over all code length vectors satisfying Kraft's inequality
    n = len(weights)
    best = None
    for lengths in product(range(1, n), repeat=n):
        if sum(Fraction(1, 2 ** length) for length in lengths) > 1:
            continue
        cost = sum(w * length for w, length in zip(weights, lengths))
        if best is None or cost < best:
            best = cost
    return best


def is_prefix_free(codes):
    items = sorted(codes.values())
    return all(not b.startswith(a) for a, b in zip(items, items[1:]))


class TestBitIO(unittest.TestCase):
    def test_write_and_read_widths(self):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        out.write_bits(3, 0b101)
        out.write_bits(9, 256)
        out.write_bits(32, HUFF_TREE)
        out.write_bits(1, 1)
        out.close()

        self.assertEqual(out.bits_written, 45)
        self.assertEqual(len(sink.getvalue()), 6)

        reader = bit_input(sink.getvalue())
        self.assertEqual(reader.read_bits(3), 0b101)
        self.assertEqual(reader.read_bits(9), 256)
        self.assertEqual(reader.read_bits(32), HUFF_TREE)
        self.assertEqual(reader.read_bits(1), 1)
        self.assertEqual(reader.bits_read, 45)

    def test_msb_first_and_padding(self):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        out.write_bits(1, 1)
        out.write_bits(2, 0b01)
        out.close()
        self.assertEqual(sink.getvalue(), b'\xa0')

    def test_write_keeps_low_bits(self):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        out.write_bits(4, 0xff3)
        out.write_bits(4, 0)
        out.close()
        self.assertEqual(sink.getvalue(), b'\x30')

    def test_eof_when_not_enough_bits(self):
        reader = bit_input(b'\x41')
        self.assertEqual(reader.read_bits(4), 0x4)
        self.assertEqual(reader.read_bits(8), EOF)
        self.assertEqual(bit_input(b'').read_bits(1), EOF)

    def test_reset(self):
        reader = bit_input(b'\x12\x34')
        self.assertEqual(reader.read_bits(12), 0x123)
        reader.reset()
        self.assertEqual(reader.read_bits(8), 0x12)
        self.assertEqual(reader.read_bits(8), 0x34)
        self.assertEqual(reader.read_bits(8), EOF)

    def test_reset_clears_bits_read(self):
        reader = bit_input(b'\x12\x34')
        reader.read_bits(16)
        self.assertEqual(reader.bits_read, 16)
        reader.reset()
        self.assertEqual(reader.bits_read, 0)
        reader.read_bits(8)
        self.assertEqual(reader.bits_read, 8)

    def test_invalid_width(self):
        with self.assertRaises(ValueError):
            bit_input(b'\x00').read_bits(0)
        with self.assertRaises(ValueError):
            BitOutputStream(io.BytesIO()).write_bits(65, 0)

    def test_close_keeps_sink_open_by_default(self):
        sink = io.BytesIO()
        with BitOutputStream(sink) as out:
            out.write_bits(8, 0x7f)
        self.assertFalse(sink.closed)
        self.assertEqual(sink.getvalue(), b'\x7f')

        owned = io.BytesIO()
        BitOutputStream(owned, closefd=True).close()
        self.assertTrue(owned.closed)

    def test_write_after_close(self):
        out = BitOutputStream(io.BytesIO())
        out.close()
        with self.assertRaises(ValueError):
            out.write_bits(1, 1)


class TestFrequencyCounter(unittest.TestCase):
    def test_counts(self):
        counts = count_frequencies(bit_input(b"aaabbc"))
        self.assertEqual(len(counts), 257)
        self.assertEqual(counts[ord('a')], 3)
        self.assertEqual(counts[ord('b')], 2)
        self.assertEqual(counts[ord('c')], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 7)

    def test_empty_input_forces_eof(self):
        counts = count_frequencies(bit_input(b""))
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 1)

    def test_eof_count_is_exactly_one(self):
        counts = count_frequencies(bit_input(bytes(range(256)) * 3))
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertTrue(all(c == 3 for c in counts[:256]))


class TestHuffmanTree(unittest.TestCase):
    def test_three_a_scenario(self):
        counts = count_frequencies(bit_input(b"AAA"))
        self.assertEqual(counts[0x41], 3)
        self.assertEqual(counts[PSEUDO_EOF], 1)

        tree = HuffmanTree().build(counts)
        self.assertEqual(len(tree.leaves()), 2)
        self.assertEqual(tree.root.weight, 4)
        self.assertEqual(tree.codes, {PSEUDO_EOF: '0', 0x41: '1'})

    def test_empty_input_gets_padding_leaf(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"")))
        self.assertEqual(len(tree.leaves()), 2)
        self.assertEqual(tree.codes, {0: '0', PSEUDO_EOF: '1'})

    def test_padding_leaf_avoids_lone_symbol(self):
        counts = [0] * 257
        counts[0] = 5
        tree = HuffmanTree().build(counts)
        self.assertEqual(sorted(tree.codes), [0, 1])

    def test_no_symbols(self):
        with self.assertRaises(DegenerateAlphabetError):
            HuffmanTree().build([0] * 257)

    def test_single_leaf_root_has_no_codes(self):
        tree = HuffmanTree()
        tree.root = HuffmanNode(PSEUDO_EOF, 1)
        with self.assertRaises(DegenerateAlphabetError):
            tree._generate_codes()

    def test_no_node_has_one_child(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"abracadabra")))
        stack = [tree.root]
        while stack:
            node = stack.pop()
            self.assertEqual(node.left is None, node.right is None)
            if not node.is_leaf():
                self.assertEqual(node.weight, node.left.weight + node.right.weight)
                stack.extend([node.left, node.right])

    def test_deterministic_ties(self):
        counts = counts_from_weights([1] * 10)
        first = HuffmanTree().build(counts).codes
        second = HuffmanTree().build(counts).codes
        self.assertEqual(first, second)

    def test_full_alphabet(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(bytes(range(256)))))
        self.assertEqual(len(tree.codes), 257)
        self.assertTrue(all(len(code) in (8, 9) for code in tree.codes.values()))


class TestCodeTable(unittest.TestCase):
    def representative_counts(self):
        random.seed(42)
        fib = [1, 1]
        while len(fib) < 24:
            fib.append(fib[-1] + fib[-2])
        return [
            count_frequencies(bit_input(b"The quick brown fox jumps over the lazy dog")),
            count_frequencies(bit_input(bytes(random.randint(0, 255) for _ in range(2000)))),
            count_frequencies(bit_input(bytes(range(256)))),
            counts_from_weights(fib),
            count_frequencies(bit_input(b"")),
        ]

    def test_prefix_free(self):
        for counts in self.representative_counts():
            codes = HuffmanTree().build(counts).codes
            self.assertTrue(is_prefix_free(codes))

    def test_kraft_equality(self):
        for counts in self.representative_counts():
            codes = HuffmanTree().build(counts).codes
            total = sum(Fraction(1, 2 ** len(code)) for code in codes.values())
            self.assertEqual(total, 1)

    def test_covers_exactly_nonzero_symbols(self):
        counts = count_frequencies(bit_input(b"mississippi"))
        codes = HuffmanTree().build(counts).codes
        expected = {value for value, weight in enumerate(counts) if weight > 0}
        self.assertEqual(set(codes), expected)

    def test_fibonacci_weights_build_deep_tree(self):
        fib = [1, 1]
        while len(fib) < 24:
            fib.append(fib[-1] + fib[-2])
        codes = HuffmanTree().build(counts_from_weights(fib)).codes
        self.assertEqual(max(len(code) for code in codes.values()), 23)

    def test_optimality(self):
        cases = [
            [3, 1],
            [1, 1, 1],
            [5, 9, 12, 13, 16, 45],
            [1, 2, 4, 8, 16],
            [7, 7, 7, 7, 1],
            [2, 3, 3, 3, 10, 1],
        ]
        for weights in cases:
            codes = HuffmanTree().build(counts_from_weights(weights)).codes
            cost = sum(w * len(codes[value]) for value, w in enumerate(weights))
            self.assertEqual(cost, min_prefix_code_cost(weights), weights)


class TestHeaderCodec(unittest.TestCase):
    def write_header(self, tree):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        bits = tree.write_header(out)
        out.close()
        return bits, sink.getvalue()

    def test_header_closure(self):
        for data in [b"AAA", b"", b"abracadabra", bytes(range(256)) * 2]:
            tree = HuffmanTree().build(count_frequencies(bit_input(data)))
            _, header = self.write_header(tree)
            decoded = HuffmanTree.read_header(bit_input(header))
            self.assertEqual(decoded.codes, tree.codes)
            self.assertTrue(all(leaf.weight == 0 for leaf in decoded.leaves()))

    def test_header_size(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"abracadabra")))
        bits, _ = self.write_header(tree)
        leaves = len(tree.codes)
        self.assertEqual(bits, leaves * 10 + (leaves - 1))

    def test_truncated_header(self):
        with self.assertRaises(TruncatedStreamError):
            HuffmanTree.read_header(bit_input(b'\x00'))
        with self.assertRaises(TruncatedStreamError):
            HuffmanTree.read_header(bit_input(b''))

    def test_illegal_leaf_value(self):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        out.write_bits(1, 0)
        out.write_bits(1, 1)
        out.write_bits(9, 300)
        out.write_bits(1, 1)
        out.write_bits(9, PSEUDO_EOF)
        out.close()
        with self.assertRaises(MalformedHeaderError):
            HuffmanTree.read_header(bit_input(sink.getvalue()))

    def test_runaway_nesting(self):
        with self.assertRaises(MalformedHeaderError):
            HuffmanTree.read_header(bit_input(b'\x00' * 64))


class TestStreamCodec(unittest.TestCase):
    def test_encode_writes_eof_code(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"AAA")))
        out = BitOutputStream(io.BytesIO())
        bits = HuffmanEncoder.encode(bit_input(b"AAA"), out, tree.codes)
        self.assertEqual(bits, 4)

    def test_decode_stops_at_eof_leaf(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"AAA")))
        # 1 1 0 then trailing bits that must be ignored
        sink = io.BytesIO()
        written = HuffmanEncoder.decode(tree.root, bit_input(b'\xdf'), BitOutputStream(sink))
        self.assertEqual(written, 2)
        self.assertEqual(sink.getvalue(), b'AA')

    def test_decode_without_eof(self):
        tree = HuffmanTree().build(count_frequencies(bit_input(b"AAA")))
        with self.assertRaises(TruncatedStreamError):
            HuffmanEncoder.decode(tree.root, bit_input(b'\xff'), BitOutputStream(io.BytesIO()))

    def test_decode_single_leaf(self):
        with self.assertRaises(DegenerateAlphabetError):
            HuffmanEncoder.decode(HuffmanNode(PSEUDO_EOF), bit_input(b'\x00'),
                                  BitOutputStream(io.BytesIO()))


class TestHuffProcessor(unittest.TestCase):
    def test_three_a_bit_exact(self):
        compressed = compress_data(b"AAA")
        self.assertEqual(compressed, bytes.fromhex('face820160120f00'))
        self.assertEqual(decompress_data(compressed), b"AAA")

    def test_empty_bit_exact(self):
        compressed = compress_data(b"")
        self.assertEqual(compressed, bytes.fromhex('face8201401804'))
        self.assertEqual(decompress_data(compressed), b"")

    def test_round_trip(self):
        random.seed(42)
        samples = [
            b"",
            b"A",
            b"\x00",
            b"\xff" * 1000,
            b"aaabbc",
            bytes(range(256)),
            bytes(random.randint(0, 255) for _ in range(3000)),
            b"Lorem ipsum dolor sit amet " * 200,
        ]
        for data in samples:
            self.assertEqual(decompress_data(compress_data(data)), data)

    def test_compresses_skewed_data(self):
        data = b"a" * 900 + b"b" * 90 + b"c" * 10
        self.assertLess(len(compress_data(data)), len(data) // 4)

    def test_bad_magic_produces_no_output(self):
        sink = io.BytesIO()
        with self.assertRaises(MalformedHeaderError):
            HuffProcessor().decompress(bit_input(b'\x00' * 16), BitOutputStream(sink))
        self.assertEqual(sink.getvalue(), b'')

    def test_short_input_is_malformed(self):
        with self.assertRaises(MalformedHeaderError):
            decompress_data(b'\xfa\xce')

    def test_truncated_payload(self):
        compressed = compress_data(b"The quick brown fox jumps over the lazy dog")
        with self.assertRaises(TruncatedStreamError):
            decompress_data(compressed[:-1])

    def test_truncated_header(self):
        compressed = compress_data(b"The quick brown fox jumps over the lazy dog")
        with self.assertRaises(TruncatedStreamError):
            decompress_data(compressed[:6])

    def test_single_leaf_header(self):
        sink = io.BytesIO()
        out = BitOutputStream(sink)
        out.write_bits(32, HUFF_TREE)
        out.write_bits(1, 1)
        out.write_bits(9, PSEUDO_EOF)
        out.close()
        with self.assertRaises(DegenerateAlphabetError):
            decompress_data(sink.getvalue())

    def test_custom_magic(self):
        config = HuffConfig(huff_number=0x12345600)
        sink = io.BytesIO()
        HuffProcessor(config=config).compress(bit_input(b"hello"), BitOutputStream(sink))
        self.assertEqual(sink.getvalue()[:4], bytes.fromhex('12345601'))
        with self.assertRaises(MalformedHeaderError):
            decompress_data(sink.getvalue())

    def test_debug_output(self):
        err = io.StringIO()
        with redirect_stderr(err):
            compressed = compress_data(b"abc", debug=HuffProcessor.DEBUG_HIGH)
            decompress_data(compressed, debug=HuffProcessor.DEBUG_LOW)
        text = err.getvalue()
        self.assertIn("code=", text)
        self.assertIn("payload bits=", text)
        self.assertIn("bytes written=3", text)

    def test_quiet_by_default(self):
        err = io.StringIO()
        with redirect_stderr(err):
            compress_data(b"abc")
        self.assertEqual(err.getvalue(), "")


class TestHuffer(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.huffer = Huffer()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def write(self, name, data):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def read(self, path):
        with open(path, 'rb') as f:
            return f.read()

    def test_default_paths(self):
        self.assertEqual(default_compressed_path("a.txt"), "a.txt.hf")
        self.assertEqual(default_decompressed_path("a.txt.hf"), "a.txt")
        self.assertEqual(default_decompressed_path("a.bin"), "a.bin.unhf")

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        path = self.write("test.txt", data)

        original_size, compressed_size = self.huffer.compress_file(path)
        self.assertEqual(original_size, len(data))
        self.assertLess(compressed_size, original_size)
        self.assertTrue(os.path.isfile(path + ".hf"))

        os.remove(path)
        self.huffer.decompress_file(path + ".hf")
        self.assertEqual(self.read(path), data)

    def test_compress_onto_itself_keeps_data(self):
        data = b"precious data " * 20
        path = self.write("same.txt", data)

        original_size, compressed_size = self.huffer.compress_file(path, path)
        self.assertEqual(original_size, len(data))
        self.assertEqual(os.path.getsize(path), compressed_size)
        self.assertEqual(decompress_data(self.read(path)), data)

    def test_batch_compress_continues_after_failure(self):
        first = self.write("file1.txt", b"Content of file 1\n" * 50)
        second = self.write("file2.txt", b"Content of file 2\n" * 50)
        # destination of the second file is a directory, so writing it fails
        os.mkdir(second + ".hf")

        with redirect_stdout(io.StringIO()) as out:
            done = self.huffer.compress_files([second, first])
        self.assertEqual(done, 1)
        self.assertIn("FAILED", out.getvalue())
        self.assertEqual(decompress_data(self.read(first + ".hf")), b"Content of file 1\n" * 50)

    def test_bad_file_leaves_no_output(self):
        path = self.write("bad.hf", b"not a huffman file")
        target = os.path.join(self.temp_dir, "bad")
        with self.assertRaises(MalformedHeaderError):
            self.huffer.decompress_file(path)
        self.assertFalse(os.path.exists(target))

    def test_batch_skips_missing(self):
        path = self.write("file1.txt", b"Content of file 1\n" * 50)
        missing = os.path.join(self.temp_dir, "missing.txt")
        with redirect_stdout(io.StringIO()) as out:
            done = self.huffer.compress_files([path, missing])
        self.assertEqual(done, 1)
        self.assertIn("skipping", out.getvalue())
        self.assertIn("Total:", out.getvalue())

    def test_batch_decompress_reports_failure(self):
        bad = self.write("bad.hf", b"\x00" * 8)
        with redirect_stdout(io.StringIO()) as out:
            done = self.huffer.decompress_files([bad])
        self.assertEqual(done, 0)
        self.assertIn("FAILED", out.getvalue())

    def test_info(self):
        path = self.write("info.txt", b"AAA")
        self.huffer.compress_file(path)
        with redirect_stdout(io.StringIO()) as out:
            self.huffer.info(path + ".hf")
        text = out.getvalue()
        self.assertIn("0xface8201", text)
        self.assertIn("Leaves:      2", text)
        self.assertIn("Header bits: 21", text)
        self.assertIn("EOF", text)


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_compress_and_decompress(self):
        source = os.path.join(self.temp_dir, "file.txt")
        packed = os.path.join(self.temp_dir, "file.hf")
        restored = os.path.join(self.temp_dir, "restored.txt")
        data = b"Content of file\n" * 50
        with open(source, 'wb') as f:
            f.write(data)

        with redirect_stdout(io.StringIO()):
            main(['compress', source, '-o', packed])
            main(['decompress', packed, '-o', restored])
            main(['info', packed])

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_compress_output_onto_input(self):
        source = os.path.join(self.temp_dir, "file.txt")
        data = b"precious data " * 20
        with open(source, 'wb') as f:
            f.write(data)

        with redirect_stdout(io.StringIO()):
            main(['compress', source, '-o', source])

        with open(source, 'rb') as f:
            self.assertEqual(decompress_data(f.read()), data)

    def test_failed_compress_exits_with_error(self):
        source = os.path.join(self.temp_dir, "file.txt")
        with open(source, 'wb') as f:
            f.write(b"data")
        os.mkdir(source + ".hf")

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(['compress', source])
        self.assertEqual(cm.exception.code, 1)

    def test_bad_input_exits_with_error(self):
        bad = os.path.join(self.temp_dir, "bad.hf")
        with open(bad, 'wb') as f:
            f.write(b"garbage!")

        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(['decompress', bad])
            self.assertEqual(cm.exception.code, 1)

            with self.assertRaises(SystemExit) as cm:
                main(['info', bad])
            self.assertEqual(cm.exception.code, 1)

    def test_output_needs_single_file(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(['compress', 'a', 'b', '-o', 'c'])
        self.assertEqual(cm.exception.code, 2)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitIO))
    suite.addTests(loader.loadTestsFromTestCase(TestFrequencyCounter))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestCodeTable))
    suite.addTests(loader.loadTestsFromTestCase(TestHeaderCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestStreamCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffProcessor))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffer))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
