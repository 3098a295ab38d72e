class OtstructException(Exception):
    '''Base class to extend in order to throw exception in otstruct.

    It takes the reason of the failure and the chain of the fields that
    caused the exception: the engine prepends the name of each enclosing
    field while the exception bubbles up, so that the final chain reads
    from the outermost record down to the failing field.
    '''

    def __init__(self, message='', chain=None):
        self.message = message
        self.chain = chain if chain is not None else []
        super().__init__(message)

    def __str__(self):
        if not self.chain:
            return self.message

        return '%s: %s' % ('.'.join(self.chain), self.message)


class SchemaDefinitionError(OtstructException):
    '''Malformed declarative schema, raised while building the record class.'''
    pass


class SerializationError(OtstructException):
    pass


class DeserializationError(OtstructException):
    pass
