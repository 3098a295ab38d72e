"""
# otstruct: OpenType tables as records.

A font file is a collection of tables, each of them a sequence of big-endian
fields where the bigger structures are not inlined but referenced by offsets,
i.e. by the distance in bytes from the start of the table (or from another
point declared by the table) to the subtable.

A table is described as a record: the ordered list of its fields, each one
with its wire-kind

 1. scalar: an integer or one of the value types in otstruct.types
 2. counted: a count followed by that many elements
 3. offset: the distance to a subtable, Maybe when it can be missing
 4. embed: another record written inline

and two operations are defined on it:

 1. unpack(): read the binary data and build the high-level representation,
    following the offsets to read the subtables
 2. pack(): encode the high-level representation into binary data, writing
    the subtables after the table and computing the offsets

Records are declared as Chunk subclasses or with the textual description
accepted by otstruct.schema.tables(); the structures too convoluted for the
generic engine (see otstruct.otvar) pack/unpack themselves using the same
building blocks.
"""
