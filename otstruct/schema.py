"""
Compile a textual description of records into Chunk subclasses.

The syntax follows the tables as they are written in the OpenType
specification, one field per line with the type first:

    tables('''
        RegionAxisCoordinates {
            F2DOT14 startCoord
            F2DOT14 peakCoord
            F2DOT14 endCoord
        }
        ItemVariationDataHeader [nodebug] {
            uint16 itemCount
            uint16 shortDeltaCount
            Counted(uint16) regionIndexes
        }
    ''', globals())

Each record can be followed by pragmas toggling its capabilities
([nodebug], [noserialize], [nodeserialize], [default], [embedded]); inside
the record [offset_base] marks where the following offsets are measured from
and [embed] inlines the subtable of the following offset field.

The types can be the scalars listed in STRUCT_SCALARS and VALUE_SCALARS, a
record defined before in the same description or a record found in the
namespace. Anything wrong is a SchemaDefinitionError: it happens at import
time, never while handling data.
"""
import logging
import re
from typing import Dict, Optional

from . import fields, types
from .core import Chunk
from .meta import MetaChunk
from .offsets import Offset16, Offset32
from .exceptions import SchemaDefinitionError


logger = logging.getLogger(__name__)


STRUCT_SCALARS = {
    'uint8':   'B',
    'int8':    'b',
    'uint16':  'H',
    'int16':   'h',
    'uint32':  'I',
    'int32':   'i',
    'FWORD':   'h',
    'UFWORD':  'H',
    'GlyphID': 'H',
}

VALUE_SCALARS = {
    'uint24':         types.uint24,
    'Fixed':          types.Fixed,
    'F2DOT14':        types.F2DOT14,
    'LONGDATETIME':   types.LONGDATETIME,
    'Version16Dot16': types.Version16Dot16,
    'Tag':            types.Tag,
}

RECORD_PRAGMAS = {
    '[nodebug]':       ('debug', False),
    '[noserialize]':   ('serialize', False),
    '[nodeserialize]': ('deserialize', False),
    '[default]':       ('default', True),
    '[embedded]':      ('embedded', True),
}

FIELD_PRAGMAS = ('[offset_base]', '[embed]')

WRAPPERS = (
    'Maybe',
    'Counted',
    'Counted32',
    'Offset16',
    'Offset32',
    'CountedOffset16',
    'CountedOffset32',
)

_TOKEN = re.compile(r'\s*(?:(\[[^\]]*\])|([A-Za-z_][A-Za-z_0-9]*)|([{}()])|(\S))')


def tokenize(source: str):
    position = 0
    source = source.rstrip()
    while position < len(source):
        match = _TOKEN.match(source, position)
        pragma, ident, punct, junk = match.groups()
        if junk is not None:
            raise SchemaDefinitionError('unexpected character %r at position %d' % (junk, match.start(4)))
        if pragma is not None:
            yield 'pragma', re.sub(r'\s+', '', pragma)
        elif ident is not None:
            yield 'ident', ident
        else:
            yield 'punct', punct
        position = match.end()


class _Parser(object):

    def __init__(self, source: str, namespace: Dict[str, object]):
        self.tokens = list(tokenize(source))
        self.position = 0
        self.namespace = namespace
        self.records: Dict[str, type] = {}

    def peek(self):
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None, None

    def next(self, expected_kind, expected_value=None, what=None):
        kind, value = self.peek()
        if kind != expected_kind or (expected_value is not None and value != expected_value):
            raise SchemaDefinitionError('expected %s, found %s' % (
                what or expected_value or expected_kind,
                'end of description' if kind is None else repr(value)))
        self.position += 1
        return value

    def record_type(self, name):
        if name in self.records:
            return self.records[name]

        candidate = self.namespace.get(name)
        if isinstance(candidate, type) and issubclass(candidate, Chunk):
            return candidate

        raise SchemaDefinitionError('unknown type \'%s\'' % name)

    def element(self, name):
        '''Something that can live inline: a scalar or a record.'''
        if name in STRUCT_SCALARS:
            return fields.StructField(STRUCT_SCALARS[name])
        if name in VALUE_SCALARS:
            return fields.ValueField(VALUE_SCALARS[name])

        return fields.Embed(self.record_type(name))

    def wrapped(self, wrapper, subtype, embed):
        if embed:
            if wrapper not in ('Maybe', 'Offset16', 'Offset32'):
                raise SchemaDefinitionError('[embed] can\'t be applied to %s' % wrapper)
            return fields.Embed(self.record_type(subtype))

        if wrapper == 'Maybe':
            return fields.Maybe(self.record_type(subtype))
        if wrapper == 'Counted':
            return fields.Counted(self.element(subtype))
        if wrapper == 'Counted32':
            return fields.Counted32(self.element(subtype))
        if wrapper == 'Offset16':
            return fields.OffsetField(self.record_type(subtype), Offset16)
        if wrapper == 'Offset32':
            return fields.OffsetField(self.record_type(subtype), Offset32)
        if wrapper == 'CountedOffset16':
            return fields.CountedOffset16(self.record_type(subtype))

        return fields.CountedOffset32(self.record_type(subtype))

    def field(self):
        offset_base, embed = False, False

        while self.peek()[0] == 'pragma':
            pragma = self.next('pragma')
            if pragma not in FIELD_PRAGMAS:
                raise SchemaDefinitionError('unknown field pragma \'%s\'' % pragma)
            if pragma == '[offset_base]':
                offset_base = True
            else:
                embed = True

        type_name = self.next('ident', what='a type')

        if type_name in WRAPPERS:
            self.next('punct', '(')
            subtype = self.next('ident', what='the type of %s()' % type_name)
            self.next('punct', ')')
            field = self.wrapped(type_name, subtype, embed)
        elif self.peek() == ('punct', '('):
            raise SchemaDefinitionError('unknown keyword \'%s\'' % type_name)
        else:
            field = self.element(type_name)
            if embed and not isinstance(field, fields.Embed):
                raise SchemaDefinitionError('[embed] can\'t be applied to the scalar %s' % type_name)

        name = self.next('ident', what='the name of the %s field' % type_name)

        return offset_base, name, field

    def record(self):
        name = self.next('ident', what='a record name')
        if name in self.records:
            raise SchemaDefinitionError('record \'%s\' is defined twice' % name)

        options = {}
        while self.peek()[0] == 'pragma':
            pragma = self.next('pragma')
            if pragma not in RECORD_PRAGMAS:
                raise SchemaDefinitionError('unknown pragma \'%s\' for record %s' % (pragma, name))
            option, value = RECORD_PRAGMAS[pragma]
            options[option] = value

        self.next('punct', '{')

        attrs = {
            '__module__': self.namespace.get('__name__', __name__),
            '__qualname__': name,
            '__doc__': 'Low-level structure used for serializing/deserializing %s' % name,
            'Meta': type('Meta', (), options),
        }

        markers = 0
        while self.peek() != ('punct', '}'):
            if self.peek()[0] is None:
                raise SchemaDefinitionError('record \'%s\' is not closed' % name)

            try:
                offset_base, field_name, field = self.field()
            except SchemaDefinitionError as e:
                e.chain.insert(0, name)
                raise

            if offset_base:
                attrs['_offset_base_%d' % markers] = fields.OffsetBase()
                markers += 1
            if field_name in attrs:
                raise SchemaDefinitionError('field \'%s\' is defined twice' % field_name, chain=[name])
            attrs[field_name] = field

        self.next('punct', '}')

        logger.debug('building record %s with %d fields' % (name, len(attrs) - 4))
        try:
            self.records[name] = MetaChunk(name, (Chunk,), attrs)
        except SchemaDefinitionError as e:
            e.chain.insert(0, name)
            raise

    def parse(self):
        while self.peek()[0] is not None:
            self.record()

        return self.records


def tables(source: str, namespace: Optional[Dict[str, object]] = None) -> Dict[str, type]:
    '''Build the records described in source, returning them by name.

    When a namespace is passed (usually globals()) the records defined there
    can be used as types, and the new ones are added to it.'''
    records = _Parser(source, namespace if namespace is not None else {}).parse()

    if namespace is not None:
        namespace.update(records)

    return records
