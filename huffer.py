"""
Главный класс для сжатия и разжатия файлов.
"""

import io
import os
from pathlib import Path
from typing import List, Optional, Tuple

from bitio import BitInputStream, BitOutputStream
from compressor import HuffProcessor
from format import HuffException, read_magic
from huffman import HuffmanTree


SUFFIX = '.hf'
UNCOMPRESSED_SUFFIX = '.unhf'


def default_compressed_path(file_path: str) -> str:
    return file_path + SUFFIX


def default_decompressed_path(file_path: str) -> str:
    if file_path.endswith(SUFFIX) and len(file_path) > len(SUFFIX):
        return file_path[:-len(SUFFIX)]
    return file_path + UNCOMPRESSED_SUFFIX


class Huffer:
    def __init__(self, debug: int = 0):
        self.debug = debug
        self.processor = HuffProcessor(debug)

    def compress_file(self, file_path: str, output_path: Optional[str] = None) -> Tuple[int, int]:
        output_path = output_path or default_compressed_path(file_path)

        # вход читается дважды; выход пишется только после успешного сжатия
        sink = io.BytesIO()
        with open(file_path, 'rb') as src:
            self.processor.compress(BitInputStream(src), BitOutputStream(sink))
        original_size = os.path.getsize(file_path)

        data = sink.getvalue()
        with open(output_path, 'wb') as f:
            f.write(data)

        return original_size, len(data)

    def decompress_file(self, file_path: str, output_path: Optional[str] = None) -> Tuple[int, int]:
        output_path = output_path or default_decompressed_path(file_path)

        # в памяти, чтобы битый вход не оставлял частичный файл
        sink = io.BytesIO()
        with open(file_path, 'rb') as src:
            self.processor.decompress(BitInputStream(src), BitOutputStream(sink))

        data = sink.getvalue()
        with open(output_path, 'wb') as f:
            f.write(data)

        return os.path.getsize(file_path), len(data)

    def compress_files(self, file_paths: List[str], output_path: Optional[str] = None) -> int:
        total_original = 0
        total_compressed = 0
        done = 0

        for file_path in file_paths:
            if not os.path.isfile(file_path):
                print(f"Warning: {file_path} not found, skipping")
                continue

            print(f"Compressing {file_path}...", end=" ")
            try:
                original_size, compressed_size = self.compress_file(file_path, output_path)
            except OSError as e:
                print(f"FAILED ({e})")
                continue
            done += 1

            ratio = (compressed_size / original_size * 100) if original_size > 0 else 0
            print(f"OK ({ratio:.1f}%)")

            total_original += original_size
            total_compressed += compressed_size

        if not done:
            print("No files to compress")
            return 0

        total_ratio = (total_compressed / total_original * 100) if total_original > 0 else 0
        print(f"Total: {total_original} -> {total_compressed} bytes ({total_ratio:.1f}%)")
        return done

    def decompress_files(self, file_paths: List[str], output_path: Optional[str] = None) -> int:
        done = 0

        for file_path in file_paths:
            if not os.path.isfile(file_path):
                print(f"Warning: {file_path} not found, skipping")
                continue

            print(f"Decompressing {file_path}...", end=" ")
            try:
                self.decompress_file(file_path, output_path)
            except HuffException as e:
                print(f"FAILED ({e})")
                continue

            done += 1
            print("OK")

        print("Decompression complete")
        return done

    def info(self, file_path: str):
        with open(file_path, 'rb') as f:
            bit_in = BitInputStream(f)
            magic = read_magic(bit_in)
            tree = HuffmanTree.read_header(bit_in)
            header_bits = bit_in.bits_read - tree.config.bits_per_int

        print(f"File:        {Path(file_path).name}")
        print(f"Magic:       0x{magic:08x}")
        print(f"Leaves:      {len(tree.leaves())}")
        print(f"Header bits: {header_bits}")
        print(f"{'Symbol':<8} {'Length':>6}  Code")
        print("-" * 40)

        for value, code in sorted(tree.codes.items(), key=lambda kv: (len(kv[1]), kv[0])):
            name = 'EOF' if value == tree.config.pseudo_eof else str(value)
            print(f"{name:<8} {len(code):>6}  {code}")
