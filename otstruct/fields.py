"""
A Field describes how a single member of a record is laid out on the wire.

Fields are schema: they don't hold values, the record instances do. Every
field is able to

 1. pack(): write a value at the current position of a stream
 2. unpack(): read a value from the current position of a stream

The Context passed around carries the offset base in force for the record
being processed and, when packing, the subtables waiting to be written after
the table that references them.
"""
import copy
import logging
import struct
from typing import List, Optional

from .meta import FieldBase
from .offsets import Offset, Offset16, Offset32
from .exceptions import (
    SchemaDefinitionError,
    SerializationError,
    DeserializationError,
)


class Pending(object):
    '''A subtable that will be packed after the table that references it; the
    placeholder at "position" is patched with the distance from "base".'''

    def __init__(self, offset_cls, position, base, link):
        self.offset_cls = offset_cls
        self.position = position
        self.base = base
        self.link = link
        self.path: List[str] = []


class Context(object):
    '''Where the offsets are measured from, and what is waiting to be written.'''

    def __init__(self, base: int, pending: Optional[List[Pending]] = None):
        self.base = base
        self.pending = pending if pending is not None else []

    def __repr__(self):
        return '<%s(base=0x%x, pending=%d)>' % (self.__class__.__name__, self.base, len(self.pending))

    def rebase(self, base: int) -> "Context":
        return Context(base, self.pending)


def _is_record(obj):
    # avoid the circular import with core
    return isinstance(obj, type) and hasattr(obj, 'from_stream') and hasattr(obj, '_meta')


class Field(FieldBase):
    """Base class to subclass from"""

    has_value = True

    def __init__(self, default=None):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = None
        self.default = default

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.name)

    def value_from_default(self):
        return copy.deepcopy(self.default)

    def coerce(self, value):
        '''The in-memory form of a value assigned to the field.'''
        return value

    @property
    def size(self) -> Optional[int]:
        '''The size on the wire if it doesn't depend on the value, None otherwise.'''
        return None

    def pack(self, value, stream, context: Context) -> None:
        raise NotImplementedError(f"method {self.__class__.__name__}.pack() not implemented")

    def unpack(self, stream, context: Context):
        raise NotImplementedError(f"method {self.__class__.__name__}.unpack() not implemented")


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes, always in network order.
    """

    def __init__(self, format, default=0):
        self.format = format
        try:
            struct.calcsize(self.get_format())
        except struct.error as e:
            raise SchemaDefinitionError('invalid struct format %r: %s' % (format, e))

        super().__init__(default=default)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.format)

    def get_format(self):
        return '>%s' % self.format

    @property
    def size(self):
        return struct.calcsize(self.get_format())

    def pack(self, value, stream, context):
        try:
            raw = struct.pack(self.get_format(), value)
        except struct.error as e:
            raise SerializationError('%r doesn\'t fit format %r (%s)' % (value, self.format, e))

        stream.write(raw)

    def unpack(self, stream, context):
        raw = stream.read(self.size)
        return struct.unpack(self.get_format(), raw)[0]


class ValueField(Field):
    """Field holding one of the value types defined in otstruct.types"""

    def __init__(self, value_type, default=None):
        self.value_type = value_type
        super().__init__(default=default)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.value_type.__name__)

    def value_from_default(self):
        if self.default is None:
            return self.value_type()

        return self.value_type.coerce(self.default)

    def coerce(self, value):
        return self.value_type.coerce(value)

    @property
    def size(self):
        return self.value_type.SIZE

    def pack(self, value, stream, context):
        try:
            value = self.value_type.coerce(value)
        except (TypeError, ValueError) as e:
            raise SerializationError('%r is not a valid %s (%s)' % (value, self.value_type.__name__, e))

        stream.write(value.pack())

    def unpack(self, stream, context):
        return self.value_type.unpack(stream.read(self.size))


class Embed(Field):
    '''The record is written inline, it shares the offset base of the table containing it.'''

    def __init__(self, record_cls):
        if not _is_record(record_cls):
            raise SchemaDefinitionError('%r is not a record that can be embedded' % (record_cls,))
        self.record_cls = record_cls
        super().__init__()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.record_cls.__name__)

    def value_from_default(self):
        return self.record_cls()

    @property
    def size(self):
        return self.record_cls.fixed_size()

    def pack(self, value, stream, context):
        if not isinstance(value, self.record_cls):
            raise SerializationError('expected a %s, got %s' % (self.record_cls.__name__, value.__class__.__name__))
        value.pack(stream, context=context)

    def unpack(self, stream, context):
        return self.record_cls.from_stream(stream, context=context)


def as_field(element) -> Field:
    '''Records used where a field is expected are embedded.'''
    if isinstance(element, Field):
        return element
    if _is_record(element):
        return Embed(element)

    raise SchemaDefinitionError('%r is neither a field nor a record' % (element,))


class Counted(Field):
    '''Un/Pack a sequence of elements prefixed by the number of them.

    The elements follow the count back to back, without any padding.'''

    COUNT_FORMAT = '>H'

    def __init__(self, element):
        self.element = as_field(element)
        if not self.element.has_value:
            raise SchemaDefinitionError('%r can\'t be an element of a sequence' % (self.element,))
        if self.element.size == 0:
            raise SchemaDefinitionError('%r takes no space, it can\'t be an element of a sequence' % (self.element,))
        super().__init__(default=[])

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.element)

    @property
    def count_size(self):
        return struct.calcsize(self.COUNT_FORMAT)

    @property
    def max_count(self):
        return (1 << (8 * self.count_size)) - 1

    def pack(self, value, stream, context):
        if len(value) > self.max_count:
            raise SerializationError('%d elements don\'t fit a %d-byte count' % (len(value), self.count_size))

        stream.write(struct.pack(self.COUNT_FORMAT, len(value)))

        for index, element in enumerate(value):
            before = len(context.pending)
            try:
                self.element.pack(element, stream, context)
            except SerializationError as e:
                e.chain.insert(0, str(index))
                raise
            for pending in context.pending[before:]:
                pending.path.insert(0, str(index))

    def unpack(self, stream, context):
        count = struct.unpack(self.COUNT_FORMAT, stream.read(self.count_size))[0]

        element_size = self.element.size
        if element_size is not None and count * element_size > stream.remaining():
            raise DeserializationError('count %d needs %d bytes, only %d available' % (
                count, count * element_size, stream.remaining()))

        self.logger.debug('unpacking %d elements of %r' % (count, self.element))

        result = []
        for index in range(count):
            try:
                result.append(self.element.unpack(stream, context))
            except DeserializationError as e:
                e.chain.insert(0, str(index))
                raise

        return result


class Counted32(Counted):
    COUNT_FORMAT = '>I'


class OffsetField(Field):
    '''A distance from the offset base to a subtable.

    The value is an Offset wrapping the subtable: when unpacking we jump to the
    subtable, read it and come back; when packing we leave a placeholder and
    let the table write the subtable after itself.'''

    def __init__(self, target, offset_cls=Offset16):
        if not _is_record(target):
            raise SchemaDefinitionError('offset target %r is not a record' % (target,))
        if target._meta.embedded:
            raise SchemaDefinitionError('%s is embedded only, it can\'t be the target of an offset' % target.__name__)
        if not issubclass(offset_cls, Offset):
            raise SchemaDefinitionError('%r is not an offset type' % (offset_cls,))

        self.target = target
        self.offset_cls = offset_cls
        super().__init__()

    def __repr__(self):
        return '<%s(%s)>' % (self.offset_cls.__name__, self.target.__name__)

    def value_from_default(self):
        return self.offset_cls()

    @property
    def size(self):
        return self.offset_cls.WIDTH

    def _link(self, value):
        if isinstance(value, Offset):
            return value.link

        return value

    def _queue(self, link, stream, context):
        if not isinstance(link, self.target):
            raise SerializationError('expected a %s, got %s' % (self.target.__name__, link.__class__.__name__))

        pending = Pending(self.offset_cls, stream.tell(), context.base, link)
        context.pending.append(pending)
        stream.write(b'\x00' * self.offset_cls.WIDTH)

    def pack(self, value, stream, context):
        link = self._link(value)
        if link is None:
            raise SerializationError('missing subtable, only Maybe fields can be empty')

        self._queue(link, stream, context)

    def _read_offset(self, stream):
        return struct.unpack(self.offset_cls.FORMAT, stream.read(self.offset_cls.WIDTH))[0]

    def _follow(self, offset, stream, context):
        position = context.base + offset
        if position >= len(stream):
            raise DeserializationError('offset 0x%x from base 0x%x points outside the buffer (size 0x%x)' % (
                offset, context.base, len(stream)))

        self.logger.debug('following offset 0x%x to %s at 0x%x' % (offset, self.target.__name__, position))

        with stream.saved():
            stream.seek(position)
            # the subtable is a table on its own: its offsets start from it
            return self.target.from_stream(stream)

    def unpack(self, stream, context):
        offset = self._read_offset(stream)
        if offset == 0:
            raise DeserializationError('null offset for a mandatory %s' % self.target.__name__)

        return self.offset_cls(self._follow(offset, stream, context), offset=offset)


class Maybe(OffsetField):
    '''Optional subtable: a zero offset means it is not there.

    The value is directly the subtable, or None.'''

    def value_from_default(self):
        return None

    def pack(self, value, stream, context):
        link = self._link(value)
        if link is None:
            stream.write(b'\x00' * self.offset_cls.WIDTH)
            return

        self._queue(link, stream, context)

    def unpack(self, stream, context):
        offset = self._read_offset(stream)
        if offset == 0:
            return None

        return self._follow(offset, stream, context)


def CountedOffset16(target):
    return Counted(OffsetField(target, Offset16))


def CountedOffset32(target):
    return Counted(OffsetField(target, Offset32))


class OffsetBase(Field):
    '''Marker: the offsets of the fields following it are measured from here
    instead of from the start of the table.'''

    has_value = False

    def __repr__(self):
        return '<%s>' % self.__class__.__name__

    @property
    def size(self):
        return 0

    def pack(self, value, stream, context):
        pass

    def unpack(self, stream, context):
        return None
