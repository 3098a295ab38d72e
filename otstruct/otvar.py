'''
# Item Variation Store

The structure holding the deltas of a variable font (used by HVAR, VVAR,
MVAR, GDEF...): a list of regions of the design space and blocks of deltas,
each block having one column per region it uses.

The format is documented at <https://learn.microsoft.com/en-us/typography/opentype/spec/otvarcommonformats#item-variation-store>.

All the offsets of the store are measured from its start, but they point into
the data following the header: we read the header, take everything after it
and resolve each offset inside that remainder, i.e. offset - len(header).

The delta rows mix two widths: the first shortDeltaCount columns are int16,
the others int8. The flag LONG_WORDS (int32/int16 deltas) is not supported.
'''
import logging
import struct
from typing import Optional

from .core import Chunk
from .fields import Context
from .schema import tables
from .streams import Stream
from .exceptions import (
    OtstructException,
    SerializationError,
    DeserializationError,
)


logger = logging.getLogger(__name__)


LONG_WORDS = 0x8000


tables('''
    RegionAxisCoordinates [embedded] {
        F2DOT14 startCoord
        F2DOT14 peakCoord
        F2DOT14 endCoord
    }

    VariationRegionListHeader [embedded] {
        uint16 axisCount
        uint16 regionCount
    }

    ItemVariationDataHeader [embedded] {
        uint16 itemCount
        uint16 shortDeltaCount
        Counted(uint16) regionIndexes
    }

    ItemVariationStoreHeader [embedded] {
        uint16 format
        uint32 variationRegionListOffset
        Counted(uint32) itemVariationDataOffsets
    }
''', globals())


def delta_row_format(short_delta_count: int, width: int) -> str:
    '''struct format of a row of deltas: the columns c < short_delta_count are
    int16, the remaining ones int8.'''
    return '>' + 'h' * short_delta_count + 'b' * (width - short_delta_count)


def _chained(exc: OtstructException, *chain):
    exc.chain[:0] = [str(_) for _ in chain]
    return exc


def as_regions(variation_regions):
    '''Regions as lists of RegionAxisCoordinates, (start, peak, end) tuples are converted.'''
    def coordinates(value):
        if isinstance(value, tuple):
            return RegionAxisCoordinates(startCoord=value[0], peakCoord=value[1], endCoord=value[2])
        return value

    return [[coordinates(_) for _ in region] for region in variation_regions]


class HandComposed(Chunk):
    '''Base for the records that the generic engine can't describe: they do
    their own packing/unpacking but can still be the target of an offset.'''

    FIELD_NAMES = []

    @classmethod
    def fixed_size(cls):
        return None

    def get_fields(self):
        return [(_, getattr(self, _)) for _ in self.FIELD_NAMES]

    def _write(self, stream: Optional[Stream]) -> Optional[bytes]:
        if not self._meta.serialize:
            raise NotImplementedError(f'{self.__class__.__name__} can\'t be serialized')

        owned = stream is None
        stream = Stream() if owned else stream
        self.write_to(stream)

        return stream.getvalue() if owned else None

    def pack(self, stream: Optional[Stream] = None, context: Optional[Context] = None) -> Optional[bytes]:
        # no offset leaves this structure, the context is not needed
        return self._write(stream)

    def write_to(self, stream: Stream):
        raise NotImplementedError(f"method {self.__class__.__name__}.write_to() not implemented")


class VariationRegionList(HandComposed):
    FIELD_NAMES = ['axisCount', 'variationRegions']

    def __init__(self, data=None, /, axisCount=0, variationRegions=()):
        if data is not None:
            super().__init__(data)
            return

        self.axisCount = axisCount
        self.variationRegions = as_regions(variationRegions)

    def unpack(self, stream: Stream, context: Optional[Context] = None):
        header = VariationRegionListHeader.from_stream(stream)

        needed = header.regionCount * header.axisCount * RegionAxisCoordinates.fixed_size()
        if needed > stream.remaining():
            raise DeserializationError('%d regions on %d axes need %d bytes, only %d available' % (
                header.regionCount, header.axisCount, needed, stream.remaining()), chain=['regionCount'])

        self.axisCount = header.axisCount
        self.variationRegions = []
        for _ in range(header.regionCount):
            self.variationRegions.append(
                [RegionAxisCoordinates.from_stream(stream) for __ in range(header.axisCount)])

    def write_to(self, stream: Stream):
        for index, region in enumerate(self.variationRegions):
            if len(region) != self.axisCount:
                raise SerializationError('region has %d axes instead of %d' % (len(region), self.axisCount),
                                         chain=['variationRegions', str(index)])

        VariationRegionListHeader(
            axisCount=self.axisCount,
            regionCount=len(self.variationRegions),
        ).pack(stream)

        for index, region in enumerate(as_regions(self.variationRegions)):
            for axis, coordinates in enumerate(region):
                try:
                    coordinates.pack(stream)
                except OtstructException as e:
                    raise _chained(e, 'variationRegions', index, axis)


class ItemVariationData(HandComposed):
    """One block of deltas: a row per item, a column per region.

    shortDeltaCount is the number of leading columns stored on 16 bits; when
    packing it is raised if some value doesn't fit in 8 bits, never lowered,
    so that data read from a font is written back as it was.
    """
    FIELD_NAMES = ['regionIndexes', 'deltaValues']

    def __init__(self, data=None, /, regionIndexes=(), deltaValues=(), shortDeltaCount=0):
        if data is not None:
            super().__init__(data)
            return

        self.regionIndexes = list(regionIndexes)
        self.deltaValues = [list(_) for _ in deltaValues]
        self.shortDeltaCount = shortDeltaCount

    @property
    def itemCount(self) -> int:
        return len(self.deltaValues)

    def needed_short_delta_count(self) -> int:
        '''How many leading columns must be 16-bit to hold all the values.'''
        return max((column + 1
                    for row in self.deltaValues
                    for column, value in enumerate(row)
                    if not -0x80 <= value <= 0x7f), default=0)

    def unpack(self, stream: Stream, context: Optional[Context] = None):
        header = ItemVariationDataHeader.from_stream(stream)
        width = len(header.regionIndexes)

        if header.shortDeltaCount & LONG_WORDS:
            raise DeserializationError('32-bit deltas (LONG_WORDS) are not supported', chain=['shortDeltaCount'])
        if header.shortDeltaCount > width:
            raise DeserializationError('%d short deltas for %d regions' % (header.shortDeltaCount, width),
                                       chain=['shortDeltaCount'])

        row_format = delta_row_format(header.shortDeltaCount, width)
        row_size = struct.calcsize(row_format)

        if header.itemCount * row_size > stream.remaining():
            raise DeserializationError('%d rows of %d bytes don\'t fit in the %d bytes available' % (
                header.itemCount, row_size, stream.remaining()), chain=['deltaValues'])

        self.regionIndexes = header.regionIndexes
        self.shortDeltaCount = header.shortDeltaCount
        self.deltaValues = [list(struct.unpack(row_format, stream.read(row_size)))
                            for _ in range(header.itemCount)]

    def write_to(self, stream: Stream):
        width = len(self.regionIndexes)

        if not 0 <= self.shortDeltaCount <= width:
            raise SerializationError('%d short deltas for %d regions' % (self.shortDeltaCount, width),
                                     chain=['shortDeltaCount'])

        for index, row in enumerate(self.deltaValues):
            if len(row) != width:
                raise SerializationError('row has %d deltas instead of %d' % (len(row), width),
                                         chain=['deltaValues', str(index)])
            for column, value in enumerate(row):
                if not -0x8000 <= value <= 0x7fff:
                    raise SerializationError('delta %d doesn\'t fit in 16 bits' % value,
                                             chain=['deltaValues', str(index), str(column)])

        short_delta_count = max(self.shortDeltaCount, self.needed_short_delta_count())
        row_format = delta_row_format(short_delta_count, width)

        ItemVariationDataHeader(
            itemCount=self.itemCount,
            shortDeltaCount=short_delta_count,
            regionIndexes=self.regionIndexes,
        ).pack(stream)

        for row in self.deltaValues:
            stream.write(struct.pack(row_format, *row))


class ItemVariationStore(HandComposed):
    FIELD_NAMES = ['format', 'axisCount', 'variationRegions', 'variationData']

    def __init__(self, data=None, /, format=1, axisCount=0, variationRegions=(), variationData=()):
        if data is not None:
            super().__init__(data)
            return

        self.format = format
        self.axisCount = axisCount
        self.variationRegions = as_regions(variationRegions)
        self.variationData = list(variationData)

    @staticmethod
    def _resolve(remainder: Stream, prefix: int, offset: int, record_cls, *chain):
        position = offset - prefix
        if position < 0 or position >= len(remainder):
            raise DeserializationError('offset 0x%x resolves outside the store data (0x%x..0x%x)' % (
                offset, prefix, prefix + len(remainder)), chain=list(map(str, chain)))

        remainder.seek(position)
        try:
            return record_cls.from_stream(remainder)
        except OtstructException as e:
            raise _chained(e, *chain)

    def unpack(self, stream: Stream, context: Optional[Context] = None):
        start = stream.tell()
        header = ItemVariationStoreHeader.from_stream(stream)
        prefix = stream.tell() - start
        logger.debug('store header: format %d, %d data blocks, %d bytes' % (
            header.format, len(header.itemVariationDataOffsets), prefix))

        # every offset in the header is from the start of the store
        remainder = Stream(stream.read_all())

        region_list = self._resolve(remainder, prefix, header.variationRegionListOffset,
                                    VariationRegionList, 'variationRegionListOffset')
        logger.debug('region list: %d axes, %d regions' % (
            region_list.axisCount, len(region_list.variationRegions)))

        variation_data = []
        for index, offset in enumerate(header.itemVariationDataOffsets):
            variation_data.append(self._resolve(remainder, prefix, offset,
                                                ItemVariationData, 'itemVariationDataOffsets', index))

        self.format = header.format
        self.axisCount = region_list.axisCount
        self.variationRegions = region_list.variationRegions
        self.variationData = variation_data

    def write_to(self, stream: Stream):
        '''The region list goes right after the header, followed by the data blocks in order.'''
        try:
            region_list = VariationRegionList(
                axisCount=self.axisCount,
                variationRegions=self.variationRegions,
            ).pack()
        except OtstructException as e:
            raise _chained(e, 'variationRegionList')

        blocks = []
        for index, data in enumerate(self.variationData):
            try:
                blocks.append(data.pack())
            except OtstructException as e:
                raise _chained(e, 'variationData', index)

        prefix = 2 + 4 + 2 + 4 * len(blocks)

        offsets = []
        position = prefix + len(region_list)
        for block in blocks:
            offsets.append(position)
            position += len(block)

        ItemVariationStoreHeader(
            format=self.format,
            variationRegionListOffset=prefix,
            itemVariationDataOffsets=offsets,
        ).pack(stream)

        stream.write(region_list)
        for block in blocks:
            stream.write(block)
