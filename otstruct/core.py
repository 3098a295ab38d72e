"""
Core module: the record (Chunk) and the generic engine that walks its fields.

A table is a record that is reached by an offset, or that is packed/unpacked
on its own: its start is the offset base for the offsets it contains. Records
written inline (embedded, elements of a sequence) share the base of the table
containing them, unless an OffsetBase marker says otherwise.
"""
import logging
import struct
from typing import Dict, List, Optional, Tuple

from .fields import Context, OffsetBase
from .meta import MetaChunk
from .streams import Stream
from .exceptions import (
    OtstructException,
    SerializationError,
    DeserializationError,
)


logger = logging.getLogger(__name__)


class Chunk(metaclass=MetaChunk):
    """
    Main class that defines a format: subclass it and list the fields in
    the class body, in the order they appear on the wire.

        class Header(Chunk):
            majorVersion = fields.StructField('H', default=1)
            minorVersion = fields.StructField('H')
            scripts      = fields.Counted(ScriptRecord)

    Passing raw data to the constructor unpacks it, otherwise the values are
    taken from the keyword arguments; a record whose Meta has "default" set
    fills the missing ones with the field defaults.
    """

    def __init__(self, data=None, /, **kwargs):
        if data is not None:
            if kwargs:
                raise TypeError('pass either the raw data or the field values, not both')
            self.unpack(Stream(data) if not isinstance(data, Stream) else data)
            return

        unknown = set(kwargs) - set(name for name, _ in self._meta.value_fields())
        if unknown:
            raise TypeError('%s has no field named %s' % (self.__class__.__name__, ', '.join(sorted(unknown))))

        missing = []
        for name, field in self._meta.value_fields():
            if name in kwargs:
                setattr(self, name, kwargs[name])
            elif self._meta.default:
                setattr(self, name, field.value_from_default())
            else:
                missing.append(name)

        if missing:
            raise TypeError('%s() missing values for %s' % (self.__class__.__name__, ', '.join(missing)))

    @classmethod
    def from_stream(cls, stream: Stream, context: Optional[Context] = None) -> "Chunk":
        instance = cls.__new__(cls)
        instance.unpack(stream, context=context)
        return instance

    @classmethod
    def from_bytes(cls, data, strict=False) -> "Chunk":
        stream = Stream(data)
        try:
            instance = cls.from_stream(stream)
        except OtstructException as e:
            e.chain.insert(0, cls.__name__)
            raise

        if stream.remaining():
            if strict:
                raise DeserializationError('%d trailing bytes after %s' % (stream.remaining(), cls.__name__))
            logger.warning('%d trailing bytes after %s' % (stream.remaining(), cls.__name__))

        return instance

    def to_bytes(self) -> bytes:
        try:
            return self.pack()
        except OtstructException as e:
            e.chain.insert(0, self.__class__.__name__)
            raise

    @classmethod
    def fixed_size(cls) -> Optional[int]:
        '''Size on the wire when it doesn't depend on the values, None otherwise.'''
        size = 0
        for name in cls._meta.fields:
            field_size = cls._meta.get_field(name).size
            if field_size is None:
                return None
            size += field_size

        return size

    def get_fields(self) -> List[Tuple[str, object]]:
        '''It returns a list of couples (name, value) for each field.'''
        return [(_, getattr(self, _)) for _, __ in self._meta.value_fields()]

    def as_dict(self) -> Dict[str, object]:
        return dict(self.get_fields())

    def __eq__(self, other):
        if not isinstance(other, Chunk):
            return NotImplemented
        if self._meta.fields != other._meta.fields:
            return False

        return self.get_fields() == other.get_fields()

    __hash__ = None

    def __repr__(self):
        if not self._meta.debug:
            return object.__repr__(self)

        msg = []
        for field_name, value in self.get_fields():
            msg.append('%s=%r' % (field_name, value))
        return '<%s(%s)>' % (self.__class__.__name__, ', '.join(msg))

    def __str__(self):
        msg = ''
        for field_name, value in self.get_fields():
            msg += '%s: %r\n' % (field_name, value)
        return msg

    def _pack_fields(self, stream: Stream, context: Context):
        for field_name in self._meta.fields:
            field = self._meta.get_field(field_name)

            if isinstance(field, OffsetBase):
                self.logger.debug('offset base for %s set at 0x%x' % (self.__class__.__name__, stream.tell()))
                context = context.rebase(stream.tell())
                continue

            self.logger.debug('packing %s.%s at 0x%x' % (self.__class__.__name__, field_name, stream.tell()))

            try:
                value = getattr(self, field_name)
            except AttributeError as e:
                raise SerializationError(str(e), chain=[field_name])

            before = len(context.pending)
            try:
                field.pack(value, stream, context)
            except OtstructException as e:
                e.chain.insert(0, field_name)
                raise

            for pending in context.pending[before:]:
                pending.path.insert(0, field_name)

    def _pack_subtables(self, stream: Stream, context: Context):
        '''Write the subtables after the table and patch the offsets pointing to them.'''
        for pending in context.pending:
            distance = stream.tell() - pending.base
            offset_cls = pending.offset_cls
            if distance > offset_cls().max:
                raise SerializationError(
                    'subtable at distance 0x%x doesn\'t fit in %s' % (distance, offset_cls.__name__),
                    chain=pending.path)

            self.logger.debug('writing subtable %s at 0x%x (offset 0x%x)' % (
                '.'.join(pending.path), stream.tell(), distance))

            try:
                pending.link.pack(stream)
            except OtstructException as e:
                e.chain[:0] = pending.path
                raise

            with stream.saved():
                stream.seek(pending.position)
                stream.write(struct.pack(offset_cls.FORMAT, distance))

    def pack(self, stream: Optional[Stream] = None, context: Optional[Context] = None) -> Optional[bytes]:
        '''Encode the record at the current position of the stream.

        Without a context the record is a table: its offsets are measured from
        its start and its subtables are written right after it. With a context
        it is inline and the subtables are left to the table owning it.

        The bytes are returned only when the stream is not passed in.
        '''
        if not self._meta.serialize:
            raise NotImplementedError(f'{self.__class__.__name__} can\'t be serialized')

        owned = stream is None
        stream = Stream() if owned else stream

        if context is not None:
            self._pack_fields(stream, context)
        else:
            context = Context(stream.tell())
            self._pack_fields(stream, context)
            self._pack_subtables(stream, context)

        return stream.getvalue() if owned else None

    def unpack(self, stream: Stream, context: Optional[Context] = None):
        '''This is one of the main APIs: take binary data and transform it
        into the representation given by the class.

        Passing a stream is mandatory since the subtables are somewhere else
        in the buffer and we need to jump back and forth.
        '''
        if not self._meta.deserialize:
            raise NotImplementedError(f'{self.__class__.__name__} can\'t be deserialized')

        context = Context(stream.tell()) if context is None else context

        for field_name in self._meta.fields:
            field = self._meta.get_field(field_name)

            if isinstance(field, OffsetBase):
                context = context.rebase(stream.tell())
                continue

            self.logger.debug('unpacking %s.%s at 0x%x' % (self.__class__.__name__, field_name, stream.tell()))

            try:
                value = field.unpack(stream, context)
            except OtstructException as e:
                e.chain.insert(0, field_name)
                raise
            setattr(self, field_name, value)
