"""
Wire-format value types with a representation that is not a plain integer.

Each of them knows its size on the wire and how to pack/unpack itself from
big-endian bytes; the fields using them (see ValueField) only glue them into
a record. Values are immutable: to change one build another.

The integer types (uint8, int16, ...) don't need a class of their own and
are handled directly by StructField.
"""
import datetime
import math
import struct
from functools import total_ordering

from bitstring import Bits

from .exceptions import SerializationError, DeserializationError


def ot_round(value: float) -> int:
    '''Round half up, as the OpenType specification does (i.e., floor(x + 0.5)),
    note that this is different from python's round().'''
    return math.floor(value + 0.5)


class WireValue(object):
    '''Base class to subclass from'''
    SIZE = 0

    @classmethod
    def coerce(cls, value):
        '''Accept either an instance or whatever the constructor accepts.'''
        if isinstance(value, cls):
            return value

        return cls(value)

    def pack(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}.pack() not implemented")

    @classmethod
    def unpack(cls, raw: bytes):
        raise NotImplementedError(f"method {cls.__name__}.unpack() not implemented")

    @classmethod
    def _check_size(cls, raw: bytes):
        if len(raw) != cls.SIZE:
            raise DeserializationError('%s needs %d bytes, got %d' % (cls.__name__, cls.SIZE, len(raw)))


class uint24(WireValue):
    '''Unsigned integer on three bytes.'''
    SIZE = 3
    MAX = (1 << 24) - 1

    def __init__(self, value=0):
        if not isinstance(value, int):
            raise TypeError('uint24 needs an integer, not %s' % value.__class__.__name__)
        self._value = value

    def __int__(self):
        return self._value

    __index__ = __int__

    def __repr__(self):
        return '%s(0x%06x)' % (self.__class__.__name__, self._value)

    def __eq__(self, other):
        if isinstance(other, uint24):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other

        return NotImplemented

    def __hash__(self):
        return hash(self._value)

    def pack(self) -> bytes:
        if not 0 <= self._value <= self.MAX:
            raise SerializationError('could not fit %d into uint24' % self._value)

        return Bits(uint=self._value, length=24).bytes

    @classmethod
    def unpack(cls, raw: bytes) -> "uint24":
        cls._check_size(raw)
        return cls(Bits(raw).uint)


@total_ordering
class FixedPoint(WireValue):
    """Signed fixed-point number stored as an integer scaled by SCALE.

    The float is what the user manipulates, the packed integer is what
    identifies the value: two floats rounding to the same packed integer
    are the same number, so equality, ordering and hashing are all defined
    on the packed representation.
    """
    SCALE = 1
    FORMAT = ''

    def __init__(self, value=0.0):
        if not isinstance(value, (int, float)):
            raise TypeError('%s needs a number, not %s' % (self.__class__.__name__, value.__class__.__name__))
        try:
            value = float(value)
        except OverflowError:
            value = math.inf
        if not math.isfinite(value):
            raise ValueError('%s can\'t hold %r' % (self.__class__.__name__, value))
        self.value = value

    def __float__(self):
        return self.value

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.value)

    def _rounded(self) -> int:
        return ot_round(self.value * self.SCALE)

    def as_packed(self) -> int:
        return self._rounded()

    @classmethod
    def from_packed(cls, packed: int):
        return cls(packed / cls.SCALE)

    @classmethod
    def round(cls, value: float) -> float:
        '''Return the float that survives a trip to the wire.'''
        return cls.from_packed(cls(value).as_packed()).value

    def _other_rounded(self, other):
        if isinstance(other, self.__class__):
            return other._rounded()
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            try:
                return self.__class__(other)._rounded()
            except ValueError:
                # nan and infinities are not numbers we can hold
                return None

        return None

    def __eq__(self, other):
        rounded = self._other_rounded(other)
        if rounded is None:
            return NotImplemented

        return self._rounded() == rounded

    def __lt__(self, other):
        rounded = self._other_rounded(other)
        if rounded is None:
            return NotImplemented

        return self._rounded() < rounded

    def __hash__(self):
        return hash(self._rounded() / self.SCALE)

    def pack(self) -> bytes:
        packed = self.as_packed()
        try:
            return struct.pack(self.FORMAT, packed)
        except struct.error:
            raise SerializationError('value %r didn\'t fit into a %s' % (self.value, self.__class__.__name__))

    @classmethod
    def unpack(cls, raw: bytes):
        cls._check_size(raw)
        return cls.from_packed(struct.unpack(cls.FORMAT, raw)[0])


class Fixed(FixedPoint):
    '''32-bit signed fixed-point number (16.16)'''
    SIZE = 4
    SCALE = 1 << 16
    FORMAT = '>i'


class F2DOT14(FixedPoint):
    '''16-bit signed fixed number with the low 14 bits of fraction (2.14).'''
    SIZE = 2
    SCALE = 1 << 14
    FORMAT = '>h'

    def as_packed(self) -> int:
        packed = self._rounded()
        if not -0x8000 <= packed <= 0x7fff:
            raise SerializationError('value %r didn\'t fit into a F2DOT14' % self.value)

        return packed


class Version16Dot16(WireValue):
    """A 16-bit major version number and a minor version number in the range 0..9.

    The minor number lives in the top nibble of the low half, so that 1.5
    is packed as 0x00015000.
    """
    SIZE = 4
    FORMAT = '>I'

    def __init__(self, packed=0):
        if not isinstance(packed, int) or not 0 <= packed <= 0xffffffff:
            raise ValueError('%r is not a packed Version16Dot16' % (packed,))
        self.packed = packed

    @classmethod
    def from_major_minor(cls, major: int, minor: int) -> "Version16Dot16":
        # we only take the lower nibble
        minor = minor & 0x0f
        if minor > 9:
            raise ValueError('minor version must be in 0..9, not %d' % minor)
        if not 0 <= major <= 0xffff:
            raise ValueError('major version must fit into 16 bits, not %d' % major)

        bits = Bits(uint=major, length=16) + Bits(uint=minor, length=4) + Bits(uint=0, length=12)
        return cls(bits.uint)

    @classmethod
    def from_num(cls, num: float) -> "Version16Dot16":
        '''The fractional part is expected to be in {.0, .1, ..., .9}'''
        major = math.trunc(num)
        # round away the binary noise before truncating (1.9 * 10 is not always 19)
        minor = math.trunc(round(num * 10, 9)) - major * 10
        return cls.from_major_minor(major, minor)

    @classmethod
    def coerce(cls, value):
        if isinstance(value, float):
            return cls.from_num(value)
        if isinstance(value, tuple):
            return cls.from_major_minor(*value)

        return super().coerce(value)

    def _bits(self):
        return Bits(uint=self.packed, length=32)

    @property
    def major(self) -> int:
        return self._bits()[:16].uint

    @property
    def minor(self) -> int:
        return self._bits()[16:20].uint

    def __repr__(self):
        return '%s(%d.%d)' % (self.__class__.__name__, self.major, self.minor)

    def __eq__(self, other):
        if not isinstance(other, Version16Dot16):
            return NotImplemented

        return self.packed == other.packed

    def __hash__(self):
        return hash(self.packed)

    def pack(self) -> bytes:
        return struct.pack(self.FORMAT, self.packed)

    @classmethod
    def unpack(cls, raw: bytes) -> "Version16Dot16":
        cls._check_size(raw)
        return cls(struct.unpack(cls.FORMAT, raw)[0])


class LONGDATETIME(WireValue):
    '''Date represented in number of seconds since 12:00 midnight, January 1, 1904, UTC.

    The value is kept as a naive datetime in UTC, aware datetimes are converted.'''
    SIZE = 8
    FORMAT = '>q'
    EPOCH = datetime.datetime(1904, 1, 1, 0, 0, 0)

    def __init__(self, value=None):
        if value is None:
            value = self.EPOCH
        if not isinstance(value, datetime.datetime):
            raise TypeError('LONGDATETIME needs a datetime, not %s' % value.__class__.__name__)
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)

        # the wire has a resolution of one second
        self.value = value.replace(microsecond=0)

    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__, self.value.isoformat())

    def __eq__(self, other):
        if isinstance(other, LONGDATETIME):
            return self.value == other.value
        if isinstance(other, datetime.datetime):
            return self == LONGDATETIME(other)

        return NotImplemented

    def __hash__(self):
        return hash(self.value)

    @property
    def seconds(self) -> int:
        return (self.value - self.EPOCH) // datetime.timedelta(seconds=1)

    def pack(self) -> bytes:
        try:
            return struct.pack(self.FORMAT, self.seconds)
        except struct.error:
            raise SerializationError('%s is too far from the 1904 epoch' % self.value.isoformat())

    @classmethod
    def unpack(cls, raw: bytes) -> "LONGDATETIME":
        cls._check_size(raw)
        seconds = struct.unpack(cls.FORMAT, raw)[0]
        try:
            return cls(cls.EPOCH + datetime.timedelta(seconds=seconds))
        except OverflowError:
            raise DeserializationError('%d seconds from the 1904 epoch is not a valid date' % seconds)


class Tag(WireValue):
    '''Four printable ASCII characters identifying a table, a script, a feature...

    Shorter tags are padded with spaces.'''
    SIZE = 4

    def __init__(self, value=b'    '):
        if isinstance(value, str):
            try:
                value = value.encode('ascii')
            except UnicodeEncodeError:
                raise ValueError('tag %r is not ASCII' % value)
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError('Tag needs str or bytes, not %s' % value.__class__.__name__)
        if len(value) > 4 or not value:
            raise ValueError('tag %r must have between 1 and 4 characters' % (value,))
        value = bytes(value).ljust(4, b' ')
        if any(_ < 0x20 or _ > 0x7e for _ in value):
            raise ValueError('tag %r contains non printable characters' % (value,))

        self.value = value

    def __str__(self):
        return self.value.decode('ascii')

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, str(self))

    def __eq__(self, other):
        if isinstance(other, Tag):
            return self.value == other.value
        if isinstance(other, (str, bytes)):
            try:
                return self == Tag(other)
            except ValueError:
                return False

        return NotImplemented

    def __hash__(self):
        return hash(self.value)

    def pack(self) -> bytes:
        return self.value

    @classmethod
    def unpack(cls, raw: bytes) -> "Tag":
        cls._check_size(raw)
        try:
            return cls(raw)
        except ValueError as e:
            raise DeserializationError(str(e))
