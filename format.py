"""
Определяет формат сжатого файла: константы, магический заголовок и ошибки.
"""

from dataclasses import dataclass


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1


@dataclass(frozen=True)
class HuffConfig:
    bits_per_word: int = BITS_PER_WORD
    bits_per_int: int = BITS_PER_INT
    huff_number: int = HUFF_NUMBER

    @property
    def alph_size(self) -> int:
        return 1 << self.bits_per_word

    @property
    def pseudo_eof(self) -> int:
        return self.alph_size

    @property
    def huff_tree(self) -> int:
        return self.huff_number | 1

    @property
    def leaf_bits(self) -> int:
        # листу нужно место под PSEUDO_EOF
        return self.bits_per_word + 1


DEFAULT_CONFIG = HuffConfig()


class HuffException(ValueError):
    pass


class MalformedHeaderError(HuffException):
    pass


class TruncatedStreamError(HuffException):
    pass


class DegenerateAlphabetError(HuffException):
    pass


def write_magic(bit_out, config: HuffConfig = DEFAULT_CONFIG):
    bit_out.write_bits(config.bits_per_int, config.huff_tree)


def read_magic(bit_in, config: HuffConfig = DEFAULT_CONFIG) -> int:
    """Читает и проверяет 32-битный тег формата"""
    bits = bit_in.read_bits(config.bits_per_int)
    if bits != config.huff_tree:
        if bits < 0:
            raise MalformedHeaderError("illegal header: stream too short")
        raise MalformedHeaderError(f"illegal header starts with 0x{bits:08x}")
    return bits
