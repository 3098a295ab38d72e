"""
In memory representation of an offset field.

On the wire an offset is nothing more than an unsigned integer, the distance
between the offset base of the record containing it and the subtable. In
memory we want the subtable itself, the "link", and we keep the raw distance
around only as information about where it was found: when packing it is
recomputed from scratch.
"""


class Offset(object):
    WIDTH = 0
    FORMAT = ''

    def __init__(self, link=None, offset=None):
        self.link = link
        self.offset = offset

    def __repr__(self):
        offset = '' if self.offset is None else ' @0x%x' % self.offset
        return '<%s%s %r>' % (self.__class__.__name__, offset, self.link)

    def __eq__(self, other):
        '''Two offsets are the same if they point to the same data, wherever it is'''
        if not isinstance(other, Offset):
            return NotImplemented

        return self.WIDTH == other.WIDTH and self.link == other.link

    __hash__ = None

    @property
    def max(self):
        return (1 << (self.WIDTH * 8)) - 1


class Offset16(Offset):
    WIDTH = 2
    FORMAT = '>H'


class Offset32(Offset):
    WIDTH = 4
    FORMAT = '>I'
