# https://www.sqlite.org/fileformat.html#the_database_header
DB_FILE_HEADER_SIZE = 100
SQLITE_MAGIC = b"SQLite format 3\x00"

MIN_PAGE_SIZE = 512
MAX_PAGE_SIZE = 65536
# A stored page size of 1 stands for 65536, which does not fit in two bytes
MAX_PAGE_SIZE_MARKER = 1
MIN_USABLE_SIZE = 480

# https://www.sqlite.org/fileformat.html#b_tree_pages
LEAF_PAGE_HEADER_SIZE = 8
INTERIOR_PAGE_HEADER_SIZE = 12
CELL_POINTER_SIZE = 2
OVERFLOW_POINTER_SIZE = 4

LAST_SEVEN_BITS_MASK = 0b_0111_1111
CONTINUATION_BIT = 0b_1000_0000
MAX_VARINT_SIZE = 9

SQLITE_SCHEMA_PAGE = 1
SQLITE_INTERNAL_PREFIX = "sqlite_"
