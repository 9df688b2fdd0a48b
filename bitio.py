"""
Побитовый ввод/вывод поверх байтовых файловых объектов.
Биты читаются и пишутся начиная со старшего (MSB-first).
"""

from typing import BinaryIO


EOF = -1
MAX_WIDTH = 64


def _check_width(width: int):
    if not 1 <= width <= MAX_WIDTH:
        raise ValueError(f"Bit width must be in 1..{MAX_WIDTH}, got {width}")


class BitInputStream:
    EOF = EOF

    def __init__(self, source: BinaryIO):
        self.source = source
        self._buf = 0
        self._nbits = 0  # bits currently in _buf
        self.bits_read = 0

    def read_bits(self, width: int) -> int:
        """Читает width битов; EOF, если столько битов не осталось"""
        _check_width(width)
        while self._nbits < width:
            byte = self.source.read(1)
            if not byte:
                return EOF
            self._buf = (self._buf << 8) | byte[0]
            self._nbits += 8

        self._nbits -= width
        value = (self._buf >> self._nbits) & ((1 << width) - 1)
        self._buf &= (1 << self._nbits) - 1
        self.bits_read += width
        return value

    def reset(self):
        """Перематывает источник в начало и обнуляет счётчик битов"""
        self.source.seek(0)
        self._buf = 0
        self._nbits = 0
        self.bits_read = 0

    def close(self):
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, sink: BinaryIO, closefd: bool = False):
        self.sink = sink
        self.closefd = closefd
        self._cur = 0
        self._nbits = 0  # bits currently in _cur (0..7)
        self.bits_written = 0
        self.closed = False

    def write_bits(self, width: int, value: int):
        """Пишет младшие width битов value, начиная со старшего"""
        _check_width(width)
        if self.closed:
            raise ValueError("write to closed BitOutputStream")

        value &= (1 << width) - 1
        self._cur = (self._cur << width) | value
        self._nbits += width
        self.bits_written += width

        if self._nbits >= 8:
            nbytes = self._nbits // 8
            self._nbits -= nbytes * 8
            self.sink.write((self._cur >> self._nbits).to_bytes(nbytes, 'big'))
            self._cur &= (1 << self._nbits) - 1

    def close(self):
        """Дополняет последний байт нулями и сбрасывает буфер"""
        if self.closed:
            return
        if self._nbits > 0:
            self.sink.write(bytes([self._cur << (8 - self._nbits)]))
            self._cur = 0
            self._nbits = 0
        self.sink.flush()
        if self.closefd:
            self.sink.close()
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
