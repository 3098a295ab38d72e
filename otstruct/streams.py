import logging
from contextlib import contextmanager

from .exceptions import DeserializationError


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around the binary buffers we work with in order
    to uniform their properties: mainly we need a cursor that never goes past
    the end of the data and that fails loudly when asked to.

    Immutable buffers (bytes, memoryview) are read through a memoryview so
    that nested decoders can work on slices of the same data without copying
    it around; a bytearray is treated as a growable output buffer.'''
    def __init__(self, obj=None):
        '''Here we normalize the object in order to be accessed as a file-like object'''
        self.obj = bytearray() if obj is None else obj
        self._type = type(self.obj)
        self.history = []
        self._position = 0

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            raise ValueError('\'%s\' is the wrong kind of buffer to use' % self._type.__name__)

        init_method()

    def __repr__(self):
        return '<%s(%s, position=%d, size=%d)>' % (
            self.__class__.__name__,
            self._type.__name__,
            self._position,
            len(self.obj),
        )

    def __len__(self):
        return len(self.obj)

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = memoryview(self.obj)
        self.writable = False

    def init_memoryview(self):
        self.obj = self.obj.cast('B') if self.obj.format != 'B' else self.obj
        self.writable = False

    def init_bytearray(self):
        self.writable = True

    def tell(self):
        return self._position

    def remaining(self):
        return len(self.obj) - self._position

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        if offset < 0 or offset > len(self.obj):
            raise DeserializationError(
                'offset %d is outside of the buffer (size %d)' % (offset, len(self.obj)))

        self._position = offset

        return self

    def read(self, size):
        '''Read exactly size bytes or fail, never a short read.'''
        if size < 0:
            raise DeserializationError('negative read size %d' % size)

        end = self._position + size

        if end > len(self.obj):
            raise DeserializationError('wanted %d bytes at offset %d, only %d available' % (
                size, self._position, self.remaining()))

        data = bytes(self.obj[self._position:end])
        self._position = end

        return data

    def read_all(self):
        '''Return everything from the cursor to the end of the buffer, the cursor
        is moved to the end.

        For immutable buffers this is a view on the same memory, not a copy.'''
        data = self.obj[self._position:]
        self._position = len(self.obj)

        return data

    def write(self, data):
        if not self.writable:
            raise ValueError('stream over %s is read-only' % self._type.__name__)

        end = self._position + len(data)
        self.obj[self._position:end] = data
        self._position = end

        return len(data)

    def getvalue(self):
        return bytes(self.obj)

    def save(self):
        self.history.append(self._position)

    def restore(self):
        old_seek = self.history.pop()
        self._position = old_seek

    @contextmanager
    def saved(self):
        '''Jump around the buffer and come back to where we were.'''
        self.save()
        try:
            yield self
        finally:
            self.restore()
