'''
# Vertical Header Table

Information needed for the vertical layout of the glyphs: only scalars, the
generic engine handles it as it is.

See <https://learn.microsoft.com/en-us/typography/opentype/spec/vhea>.
'''
from ..schema import tables
from ..types import Tag


TAG = Tag('vhea')


tables('''
    vhea {
        uint16 majorVersion
        uint16 minorVersion
        int16  vertTypoAscender
        int16  vertTypoDescender
        int16  vertTypoLineGap
        int16  advanceHeightMax
        int16  minTopSideBearing
        int16  minBottomSideBearing
        int16  yMaxExtent
        int16  caretSlopeRise
        int16  caretSlopeRun
        int16  caretOffset
        int16  reserved0
        int16  reserved1
        int16  reserved2
        int16  reserved3
        int16  metricDataFormat
        uint16 numOfLongVerMetrics
    }
''', globals())
