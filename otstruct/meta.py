import logging

from .exceptions import SchemaDefinitionError


class FieldDescriptor(object):
    """Wrapper around field access of a record: the class exposes the field,
    the instances their value."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self.field

        try:
            return instance.__dict__[self.field.name]
        except KeyError:
            raise AttributeError(f"field '{self.field.name}' of {type.__name__} has no value yet")

    def __set__(self, instance, value):
        instance.__dict__[self.field.name] = self.field.coerce(value)


class FieldBase(object):

    def contribute_to_chunk(self, cls, name):
        if name in cls._meta.fields:
            raise SchemaDefinitionError(f'field {name} is already present in class {cls.__name__}')
        if hasattr(cls, name):
            raise SchemaDefinitionError(f'field {name} would shadow the attribute of class {cls.__name__}')

        cls._meta.fields.append(name)
        cls._meta.field_map[name] = self
        setattr(cls, name, FieldDescriptor(self, name))


class Meta(object):
    """Class containing metadata about the record: the ordered list of its
    fields and which capabilities it has.

     - debug: a repr() listing the fields
     - default: can be built without passing all the fields
     - serialize, deserialize: can be packed, unpacked
     - embedded: lives only inline, it can't be the target of an offset
    """

    CAPABILITIES = {
        'debug': True,
        'default': False,
        'serialize': True,
        'deserialize': True,
        'embedded': False,
    }

    def __init__(self, parent=None, options=None):
        self.fields = list(parent.fields) if parent else []
        self.field_map = dict(parent.field_map) if parent else {}

        for name, value in self.CAPABILITIES.items():
            setattr(self, name, getattr(parent, name) if parent else value)

        for name, value in (options or {}).items():
            if name not in self.CAPABILITIES:
                raise SchemaDefinitionError(f"unknown Meta option '{name}'")
            setattr(self, name, bool(value))

    def get_field(self, name):
        return self.field_map[name]

    def value_fields(self):
        return [(name, self.field_map[name]) for name in self.fields if self.field_map[name].has_value]


class MetaChunk(type):

    def __new__(cls, names, bases, attrs):
        '''All of this is a big hack, maybe too inspired by how Django does a similar thing!'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)
        options = attrs.pop('Meta', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaChunk, cls).__new__(cls, names, bases, new_attrs)

        # handle inheritance
        parents = [_ for _ in bases if isinstance(_, MetaChunk)]
        if len(parents) > 1:
            raise SchemaDefinitionError(f'{names} can\'t inherit fields from more than one record')

        options = {k: v for k, v in vars(options).items() if not k.startswith('_')} if options else {}
        new_cls._meta = Meta(parent=parents[0]._meta if parents else None, options=options)
        new_cls.logger = logging.getLogger(f'{module}.{names}')

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_chunk'):
            cls.logger.debug('contribute_to_chunk() found for field \'%s\'' % name)
            value.contribute_to_chunk(cls, name)
        else:
            setattr(cls, name, value)
