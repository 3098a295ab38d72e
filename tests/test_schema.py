import pytest

from otstruct.core import Chunk
from otstruct.exceptions import SchemaDefinitionError
from otstruct.fields import (
    StructField,
    ValueField,
    Embed,
    Counted,
    Counted32,
    Maybe,
    OffsetBase,
)
from otstruct.offsets import Offset16, Offset32
from otstruct.schema import tables, tokenize
from otstruct.types import Tag, uint24


def test_tokenize():
    assert list(tokenize('Foo [ no debug ] {\n  Counted(uint16) x\n}')) == [
        ('ident', 'Foo'),
        ('pragma', '[nodebug]'),
        ('punct', '{'),
        ('ident', 'Counted'),
        ('punct', '('),
        ('ident', 'uint16'),
        ('punct', ')'),
        ('ident', 'x'),
        ('punct', '}'),
    ]


def test_tables_scalars():
    records = tables('''
        Scalars {
            uint8   a
            int8    b
            uint16  c
            int16   d
            uint24  e
            uint32  f
            int32   g
            FWORD   h
            UFWORD  i
            GlyphID j
            Tag     k
        }
    ''')

    Scalars = records['Scalars']

    assert issubclass(Scalars, Chunk)
    assert Scalars._meta.fields == ['a', 'b', 'c', 'd', 'e', 'f', 'g', 'h', 'i', 'j', 'k']
    assert isinstance(Scalars.a, StructField)
    assert isinstance(Scalars.e, ValueField)
    assert Scalars.fixed_size() == 1 + 1 + 2 + 2 + 3 + 4 + 4 + 2 + 2 + 2 + 4

    raw = (
        b'\x01' b'\xff' b'\x00\x02' b'\xff\xfc' b'\x00\x00\x05'
        b'\x00\x00\x00\x06' b'\xff\xff\xff\xf9' b'\xff\xf8' b'\x00\x09'
        b'\x00\x0a' b'GSUB'
    )
    scalars = Scalars.from_bytes(raw)

    assert scalars.as_dict() == {
        'a': 1, 'b': -1, 'c': 2, 'd': -4, 'e': uint24(5), 'f': 6,
        'g': -7, 'h': -8, 'i': 9, 'j': 10, 'k': Tag('GSUB'),
    }
    assert scalars.to_bytes() == raw


def test_tables_wrappers():
    records = tables('''
        Value {
            uint16 value
        }

        Wrappers {
            Counted(uint16) many
            Counted32(Value) values
            Offset16(Value) first
            Offset32(Value) second
            Maybe(Value) optional
            CountedOffset16(Value) firsts
            CountedOffset32(Value) seconds
            Value inline
        }
    ''')

    Wrappers = records['Wrappers']

    assert isinstance(Wrappers.many, Counted)
    assert isinstance(Wrappers.values, Counted32)
    assert isinstance(Wrappers.values.element, Embed)
    assert Wrappers.values.element.record_cls is records['Value']
    assert Wrappers.first.offset_cls is Offset16
    assert Wrappers.second.offset_cls is Offset32
    assert isinstance(Wrappers.optional, Maybe)
    assert Wrappers.firsts.element.offset_cls is Offset16
    assert Wrappers.seconds.element.offset_cls is Offset32
    assert isinstance(Wrappers.inline, Embed)


def test_tables_offset_base_and_embed():
    records = tables('''
        Value {
            uint16 value
        }

        Root {
            uint16 version
            [offset_base]
            Offset16(Value) first
            Maybe(Value) second
            [embed] Offset32(Value) third
        }
    ''')

    Value, Root = records['Value'], records['Root']

    assert isinstance(Root._meta.get_field('_offset_base_0'), OffsetBase)
    assert isinstance(Root.third, Embed)

    root = Root(
        version=1,
        first=Offset16(Value(value=0x11)),
        second=Value(value=0x22),
        third=Value(value=0x33),
    )

    raw = root.to_bytes()

    assert raw == b'\x00\x01\x00\x06\x00\x08\x00\x33\x00\x11\x00\x22'

    decoded = Root.from_bytes(raw)

    assert decoded == root
    assert decoded.first.offset == 6


def test_tables_pragmas():
    records = tables('''
        Quiet [nodebug] [default] {
            uint16 value
        }

        Inline [embedded] {
            uint16 value
        }

        Frozen [noserialize] [nodeserialize] {
            uint16 value
        }
    ''')

    quiet = records['Quiet']()

    assert quiet.value == 0
    assert 'value' not in repr(quiet)
    assert records['Inline']._meta.embedded

    with pytest.raises(NotImplementedError):
        records['Frozen'].from_bytes(b'\x00\x00')


def test_tables_namespace():
    class Leaf(Chunk):
        value = StructField('H')

    namespace = {'__name__': 'kebab', 'Leaf': Leaf}

    records = tables('''
        Tree {
            CountedOffset16(Leaf) leaves
        }
    ''', namespace)

    assert namespace['Tree'] is records['Tree']
    assert records['Tree'].__module__ == 'kebab'
    assert records['Tree'].leaves.element.target is Leaf


@pytest.mark.parametrize('source,message', [
    ('Foo { Array(uint16) x }', 'unknown keyword'),
    ('Foo { kebab x }', 'unknown type'),
    ('Foo [kebab] { uint16 x }', 'unknown pragma'),
    ('Foo { [kebab] uint16 x }', 'unknown field pragma'),
    ('Foo { uint16 x', 'not closed'),
    ('Foo { uint16 x uint16 x }', 'defined twice'),
    ('Foo { uint16 x } Foo { uint16 y }', 'defined twice'),
    ('Foo { uint16 x; }', 'unexpected character'),
    ('Foo { uint16 }', 'expected the name'),
    ('Foo { [embed] Counted(uint16) x }', 'can\'t be applied'),
    ('Foo { [embed] uint16 x }', 'can\'t be applied'),
    ('Bar [embedded] { uint16 x } Foo { Offset16(Bar) b }', 'embedded only'),
    ('Foo { uint16 pack }', 'shadow'),
])
def test_tables_errors(source, message):
    with pytest.raises(SchemaDefinitionError) as excinfo:
        tables(source)

    assert message in str(excinfo.value)
