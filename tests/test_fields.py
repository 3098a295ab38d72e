import pytest

from otstruct.core import Chunk
from otstruct.exceptions import (
    SchemaDefinitionError,
    SerializationError,
    DeserializationError,
)
from otstruct.fields import (
    Context,
    StructField,
    ValueField,
    Embed,
    Counted,
    Counted32,
    OffsetField,
    Maybe,
    OffsetBase,
)
from otstruct.offsets import Offset16, Offset32
from otstruct.streams import Stream
from otstruct.types import Fixed, Tag


class Leaf(Chunk):
    value = StructField('H')


class Shelf(Chunk):
    value = StructField('H')

    class Meta:
        embedded = True


def test_structfield():
    field = StructField('I')
    stream = Stream()

    assert field.size == 4

    field.pack(0xcafe, stream, Context(0))

    assert stream.getvalue() == b'\x00\x00\xca\xfe'
    assert field.unpack(Stream(stream.getvalue()), Context(0)) == 0xcafe


def test_structfield_overflow():
    field = StructField('B')

    with pytest.raises(SerializationError):
        field.pack(0x100, Stream(), Context(0))


def test_structfield_wrong_format():
    with pytest.raises(SchemaDefinitionError):
        StructField('kebab')


def test_valuefield():
    field = ValueField(Fixed)
    stream = Stream()

    field.pack(-12.5, stream, Context(0))

    assert field.size == 4
    assert stream.getvalue() == b'\xff\xf3\x80\x00'
    assert field.unpack(Stream(stream.getvalue()), Context(0)) == -12.5

    with pytest.raises(SerializationError):
        ValueField(Tag).pack('toolong', Stream(), Context(0))


def test_counted():
    field = Counted(StructField('H'))
    stream = Stream()

    field.pack([1, 2, 3], stream, Context(0))

    assert stream.getvalue() == b'\x00\x03\x00\x01\x00\x02\x00\x03'
    assert field.unpack(Stream(stream.getvalue()), Context(0)) == [1, 2, 3]

    stream = Stream()
    Counted32(StructField('B')).pack([0xaa], stream, Context(0))

    assert stream.getvalue() == b'\x00\x00\x00\x01\xaa'


def test_counted_of_records():
    field = Counted(Leaf)

    assert isinstance(field.element, Embed)
    assert field.unpack(Stream(b'\x00\x02\xca\xfe\xbe\xef'), Context(0)) == [
        Leaf(value=0xcafe),
        Leaf(value=0xbeef),
    ]


def test_counted_too_many():
    """The count is checked against the available data before reading the elements."""
    with pytest.raises(DeserializationError):
        Counted(StructField('I')).unpack(Stream(b'\xff\xff\x00\x00\x00\x00'), Context(0))


def test_counted_element_error_has_index():
    with pytest.raises(SerializationError) as excinfo:
        Counted(StructField('B')).pack([1, 2, 0x100], Stream(), Context(0))

    assert excinfo.value.chain == ['2']


def test_offsetfield_queues_the_subtable():
    field = OffsetField(Leaf)
    stream = Stream()
    stream.write(b'\x00\x00')
    context = Context(0)

    field.pack(Offset16(Leaf(value=1)), stream, context)

    # placeholder written, subtable waiting for the table to end
    assert stream.getvalue() == b'\x00\x00\x00\x00'
    assert len(context.pending) == 1

    pending = context.pending[0]

    assert pending.position == 2
    assert pending.base == 0
    assert pending.offset_cls is Offset16
    assert pending.link == Leaf(value=1)


def test_offsetfield_unpack():
    field = OffsetField(Leaf, Offset32)

    stream = Stream(b'\x00\x00\x00\x06\x00\x00\xca\xfe')
    value = field.unpack(stream, Context(0))

    assert isinstance(value, Offset32)
    assert value.offset == 6
    assert value.link == Leaf(value=0xcafe)
    # the cursor is after the offset, not after the subtable
    assert stream.tell() == 4


def test_offsetfield_relative_to_base():
    stream = Stream(b'\xff\xff\x00\x00\x00\x02\xbe\xef')
    stream.seek(4)

    value = OffsetField(Leaf).unpack(stream, Context(4))

    assert value.link == Leaf(value=0xbeef)


def test_offsetfield_null():
    with pytest.raises(DeserializationError):
        OffsetField(Leaf).unpack(Stream(b'\x00\x00'), Context(0))

    with pytest.raises(SerializationError):
        OffsetField(Leaf).pack(None, Stream(), Context(0))

    with pytest.raises(SerializationError):
        OffsetField(Leaf).pack(Offset16(), Stream(), Context(0))


def test_offsetfield_outside_buffer():
    with pytest.raises(DeserializationError):
        OffsetField(Leaf).unpack(Stream(b'\x00\x02'), Context(0))


def test_offsetfield_wrong_target():
    with pytest.raises(SchemaDefinitionError):
        OffsetField(StructField('H'))

    with pytest.raises(SchemaDefinitionError):
        OffsetField(Shelf)

    with pytest.raises(SchemaDefinitionError):
        OffsetField(Leaf, int)

    with pytest.raises(SerializationError):
        OffsetField(Leaf).pack(Offset16(Shelf(value=1)), Stream(), Context(0))


def test_maybe():
    field = Maybe(Leaf)

    assert field.unpack(Stream(b'\x00\x00'), Context(0)) is None
    assert field.unpack(Stream(b'\x00\x02\x00\x07'), Context(0)) == Leaf(value=7)

    stream = Stream()
    context = Context(0)
    field.pack(None, stream, context)

    assert stream.getvalue() == b'\x00\x00'
    assert context.pending == []


def test_offset_equality():
    """Offsets compare the data they point to, not where it was found."""
    assert Offset16(Leaf(value=1), offset=4) == Offset16(Leaf(value=1))
    assert Offset16(Leaf(value=1)) != Offset16(Leaf(value=2))
    assert Offset16(Leaf(value=1)) != Offset32(Leaf(value=1))
    assert Offset16().max == 0xffff
    assert Offset32().max == 0xffffffff


def test_offset_base_has_no_value():
    marker = OffsetBase()

    assert not marker.has_value
    assert marker.size == 0

    with pytest.raises(SchemaDefinitionError):
        Counted(marker)


def test_valuefield_not_finite():
    with pytest.raises(SerializationError):
        ValueField(Fixed).pack(float('nan'), Stream(), Context(0))


def test_counted_of_nothing():
    """A count of elements without size would read forever from a few bytes."""
    class Empty(Chunk):
        pass

    class Marker(Chunk):
        start = OffsetBase()

    with pytest.raises(SchemaDefinitionError):
        Counted32(Empty)

    with pytest.raises(SchemaDefinitionError):
        Counted(Marker)
