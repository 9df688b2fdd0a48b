"""
Реализует кодирование Хаффмана с деревом в заголовке.
Частоты считаются по всему входу, дерево записывается в поток
прямым обходом, затем каждый байт кодируется путём от корня до листа.
"""

import heapq
from typing import Dict, List, Optional

from bitio import EOF
from format import (DEFAULT_CONFIG, HuffConfig, DegenerateAlphabetError,
                    MalformedHeaderError, TruncatedStreamError)


class HuffmanNode:
    def __init__(self, value: int = 0, weight: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.value = value
        self.weight = weight
        self.left = left
        self.right = right

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf():
            return f"Leaf({self.value}, w={self.weight})"
        return f"Node(w={self.weight}, {self.left!r}, {self.right!r})"


def count_frequencies(bit_in, config: HuffConfig = DEFAULT_CONFIG) -> List[int]:
    """Считает вхождения каждого байта; PSEUDO_EOF всегда ровно 1"""
    counts = [0] * (config.alph_size + 1)

    while True:
        value = bit_in.read_bits(config.bits_per_word)
        if value == EOF:
            break
        counts[value] += 1

    counts[config.pseudo_eof] = 1
    return counts


class HuffmanTree:
    def __init__(self, config: HuffConfig = DEFAULT_CONFIG):
        self.config = config
        self.root: Optional[HuffmanNode] = None
        self.codes: Dict[int, str] = {}

    def build(self, counts: List[int]) -> 'HuffmanTree':
        # (weight, order, node): order keeps ties stable by creation order
        heap = [(weight, value, HuffmanNode(value, weight))
                for value, weight in enumerate(counts) if weight > 0]
        if not heap:
            raise DegenerateAlphabetError("no symbols to build a tree from")

        order = len(counts)
        if len(heap) == 1:
            lone = heap[0][2].value
            pad = 1 if lone == 0 else 0
            heap.append((0, order, HuffmanNode(pad, 0)))
            order += 1

        heapq.heapify(heap)
        while len(heap) > 1:
            left = heapq.heappop(heap)[2]
            right = heapq.heappop(heap)[2]

            parent = HuffmanNode(0, left.weight + right.weight, left, right)
            heapq.heappush(heap, (parent.weight, order, parent))
            order += 1

        self.root = heap[0][2]
        self._generate_codes()
        return self

    def _generate_codes(self):
        self.codes = {}

        if self.root is None or self.root.is_leaf():
            raise DegenerateAlphabetError("tree needs at least two leaves")

        def traverse(node: HuffmanNode, code: str):
            if node.is_leaf():
                self.codes[node.value] = code
                return

            traverse(node.left, code + '0')
            traverse(node.right, code + '1')

        traverse(self.root, '')

    def leaves(self) -> List[HuffmanNode]:
        out = []
        stack = [self.root] if self.root else []
        while stack:
            node = stack.pop()
            if node.is_leaf():
                out.append(node)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return out

    def write_header(self, bit_out) -> int:
        """Записывает дерево прямым обходом, возвращает число битов"""
        start = bit_out.bits_written

        def write(node: HuffmanNode):
            if node.is_leaf():
                bit_out.write_bits(1, 1)
                bit_out.write_bits(self.config.leaf_bits, node.value)
                return
            bit_out.write_bits(1, 0)
            write(node.left)
            write(node.right)

        write(self.root)
        return bit_out.bits_written - start

    @staticmethod
    def read_header(bit_in, config: HuffConfig = DEFAULT_CONFIG) -> 'HuffmanTree':
        # a tree of at most ALPH_SIZE + 1 leaves is never deeper than this
        max_depth = config.alph_size

        def read(depth: int) -> HuffmanNode:
            if depth > max_depth:
                raise MalformedHeaderError(f"tree header nested deeper than {max_depth}")

            bit = bit_in.read_bits(1)
            if bit == EOF:
                raise TruncatedStreamError("stream ended inside tree header")

            if bit == 0:
                left = read(depth + 1)
                right = read(depth + 1)
                return HuffmanNode(0, 0, left, right)

            value = bit_in.read_bits(config.leaf_bits)
            if value == EOF:
                raise TruncatedStreamError("stream ended inside tree header")
            if value > config.pseudo_eof:
                raise MalformedHeaderError(f"illegal leaf value {value} in tree header")
            return HuffmanNode(value, 0)

        tree = HuffmanTree(config)
        tree.root = read(0)
        if not tree.root.is_leaf():
            tree._generate_codes()
        return tree


class HuffmanEncoder:
    @staticmethod
    def encode(bit_in, bit_out, codes: Dict[int, str],
               config: HuffConfig = DEFAULT_CONFIG) -> int:
        """Кодирует поток байтов, в конце пишет код PSEUDO_EOF"""
        table = {value: (len(code), int(code, 2)) for value, code in codes.items()}
        start = bit_out.bits_written

        while True:
            value = bit_in.read_bits(config.bits_per_word)
            if value == EOF:
                break
            bit_out.write_bits(*table[value])

        bit_out.write_bits(*table[config.pseudo_eof])
        return bit_out.bits_written - start

    @staticmethod
    def decode(root: HuffmanNode, bit_in, bit_out,
               config: HuffConfig = DEFAULT_CONFIG) -> int:
        """Проходит дерево по битам до листа PSEUDO_EOF, возвращает число байтов"""
        if root is None or root.is_leaf():
            raise DegenerateAlphabetError("cannot decode with a single-leaf tree")

        written = 0
        current = root
        while True:
            bit = bit_in.read_bits(1)
            if bit == EOF:
                raise TruncatedStreamError("bad input, no PSEUDO_EOF")

            current = current.left if bit == 0 else current.right

            if current.is_leaf():
                if current.value == config.pseudo_eof:
                    break
                bit_out.write_bits(config.bits_per_word, current.value)
                written += 1
                current = root

        return written
