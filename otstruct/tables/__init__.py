'''
# Tables

Each module describes one table of the font, the TAG constant is the tag it
has in the table directory.
'''
