from otstruct.core import Chunk
from otstruct.tables import vhea


BINARY_VHEA = bytes([
    0x00, 0x01, 0x00, 0x00, 0x02, 0xc1, 0xff, 0x4c, 0x00, 0x00, 0x05, 0x1f, 0xfe, 0x82,
    0xfe, 0x82, 0x04, 0xdd, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x04, 0x5d,
])


def build_vhea():
    return vhea.vhea(
        majorVersion=1,
        minorVersion=0,
        vertTypoAscender=705,
        vertTypoDescender=-180,
        vertTypoLineGap=0,
        advanceHeightMax=1311,
        minTopSideBearing=-382,
        minBottomSideBearing=-382,
        yMaxExtent=1245,
        caretSlopeRise=1,
        caretSlopeRun=0,
        caretOffset=0,
        reserved0=0,
        reserved1=0,
        reserved2=0,
        reserved3=0,
        metricDataFormat=0,
        numOfLongVerMetrics=1117,
    )


def test_vhea_declaration():
    assert issubclass(vhea.vhea, Chunk)
    assert vhea.vhea.__module__ == 'otstruct.tables.vhea'
    assert vhea.vhea.fixed_size() == len(BINARY_VHEA)
    assert vhea.TAG == 'vhea'


def test_vhea_serialization():
    assert build_vhea().to_bytes() == BINARY_VHEA


def test_vhea_deserialization():
    table = vhea.vhea.from_bytes(BINARY_VHEA)

    assert table == build_vhea()
    assert table.vertTypoDescender == -180
    assert table.numOfLongVerMetrics == 1117
