"""
Huffman Processor

Сжатие и распаковка потоков: подсчёт частот, построение дерева,
запись заголовка и кодирование за два прохода по входу.
"""

import io
import sys

from bitio import BitInputStream, BitOutputStream
from format import DEFAULT_CONFIG, HuffConfig, write_magic, read_magic
from huffman import HuffmanTree, HuffmanEncoder, count_frequencies


DEBUG_LOW = 1
DEBUG_HIGH = 4


class HuffProcessor:
    DEBUG_LOW = DEBUG_LOW
    DEBUG_HIGH = DEBUG_HIGH

    def __init__(self, debug: int = 0, config: HuffConfig = DEFAULT_CONFIG):
        self.debug = debug
        self.config = config

    def _log(self, level: int, message: str):
        if self.debug >= level:
            print(message, file=sys.stderr)

    def compress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> HuffmanTree:
        """
        Сжимает поток. Вход читается дважды, поэтому должен поддерживать reset().
        """
        counts = count_frequencies(bit_in, self.config)
        tree = HuffmanTree(self.config).build(counts)

        if self.debug >= DEBUG_HIGH:
            for value, code in sorted(tree.codes.items()):
                self._log(DEBUG_HIGH, f"{value:>4} count={counts[value]:<8} code={code}")

        write_magic(bit_out, self.config)
        header_bits = tree.write_header(bit_out)

        bit_in.reset()
        payload_bits = HuffmanEncoder.encode(bit_in, bit_out, tree.codes, self.config)
        bit_out.close()

        self._log(DEBUG_LOW, f"symbols={len(tree.codes)} header bits={header_bits} "
                             f"payload bits={payload_bits}")
        return tree

    def decompress(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
        """
        Распаковывает поток. Неверный тег формата отвергается до записи вывода.
        """
        read_magic(bit_in, self.config)
        tree = HuffmanTree.read_header(bit_in, self.config)

        if self.debug >= DEBUG_HIGH:
            for value, code in sorted(tree.codes.items()):
                self._log(DEBUG_HIGH, f"{value:>4} code={code}")

        written = HuffmanEncoder.decode(tree.root, bit_in, bit_out, self.config)
        bit_out.close()

        self._log(DEBUG_LOW, f"leaves={len(tree.codes)} bytes written={written} "
                             f"bits read={bit_in.bits_read}")
        return written


def compress_data(data: bytes, debug: int = 0) -> bytes:
    sink = io.BytesIO()
    HuffProcessor(debug).compress(BitInputStream(io.BytesIO(data)), BitOutputStream(sink))
    return sink.getvalue()


def decompress_data(compressed: bytes, debug: int = 0) -> bytes:
    sink = io.BytesIO()
    HuffProcessor(debug).decompress(BitInputStream(io.BytesIO(compressed)), BitOutputStream(sink))
    return sink.getvalue()
