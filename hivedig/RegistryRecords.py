# hivedig: dig raw value data out of registry hives
# (c) Maxim Suhanov
#
# This module implements a low-level interface to parse registry structures (records).
# Each record class is given the fixed part of a record only, trailing data (like a name) is read separately.

from struct import unpack
from collections import namedtuple
from .RegistryFile import ParseException

# Key node flags.
KEY_COMP_NAME = 0x0020

# Key value flags.
VALUE_COMP_NAME = 0x0001

# The maximum size of data stored in a single cell (and in a single segment of big data).
DATA_SEGMENT_SIZE_MAX = 16344

LeafElement = namedtuple('LeafElement', [ 'relative_offset', 'name_hint', 'name_hash' ])

class MemoryBlock(object):
	"""This is a generic class for a memory block (a part of cell data), it provides low-level methods for reading and parsing data.
	All methods are self-explanatory.
	"""

	def __init__(self, buf):
		self.buf = buf

	def read_binary(self, pos, length):
		b = self.buf[pos : pos + length]
		if len(b) != length:
			raise ParseException('Cannot read data (expected: {} bytes, read: {} bytes)'.format(length, len(b)))

		return b

	def read_uint16(self, pos):
		b = self.read_binary(pos, 2)
		return unpack('<H', b)[0]

	def read_uint32(self, pos):
		b = self.read_binary(pos, 4)
		return unpack('<L', b)[0]

class SubkeysList(MemoryBlock):
	"""This is a generic class for a subkeys list (a leaf or an index root).
	A buffer should contain a header (a signature and a number of elements) and all elements.
	"""

	SIGNATURE = None
	ELEMENT_SIZE = 4
	HEADER_SIZE = 4

	def __init__(self, buf):
		super(SubkeysList, self).__init__(buf)

		signature = self.get_signature()
		if signature != self.SIGNATURE:
			raise ParseException('Invalid signature: {}'.format(signature))

	@classmethod
	def get_length(cls, elements_count):
		"""Return the number of bytes occupied by a list with a given number of elements."""

		return cls.HEADER_SIZE + elements_count * cls.ELEMENT_SIZE

	def get_signature(self):
		return self.read_binary(0, 2)

	def get_elements_count(self):
		return self.read_uint16(2)

	def get_element_position(self, i):
		return self.HEADER_SIZE + i * self.ELEMENT_SIZE

class IndexLeaf(SubkeysList):
	"""This is a class for an index leaf, it provides methods to read this leaf."""

	SIGNATURE = b'li'

	def elements(self):
		"""This method yields LeafElement tuples."""

		i = 0
		while i < self.get_elements_count():
			pos = self.get_element_position(i)
			yield LeafElement(relative_offset = self.read_uint32(pos), name_hint = None, name_hash = None)
			i += 1

class FastLeaf(SubkeysList):
	"""This is a class for a fast leaf, it provides methods to read this leaf.
	Each element contains a name hint (first four characters of a name) after a key node offset.
	"""

	SIGNATURE = b'lf'
	ELEMENT_SIZE = 8

	def elements(self):
		"""This method yields LeafElement tuples."""

		i = 0
		while i < self.get_elements_count():
			pos = self.get_element_position(i)
			yield LeafElement(relative_offset = self.read_uint32(pos), name_hint = self.read_binary(pos + 4, 4), name_hash = None)
			i += 1

class HashLeaf(SubkeysList):
	"""This is a class for a hash leaf, it provides methods to read this leaf.
	Each element contains a name hash after a key node offset.
	"""

	SIGNATURE = b'lh'
	ELEMENT_SIZE = 8

	def elements(self):
		"""This method yields LeafElement tuples."""

		i = 0
		while i < self.get_elements_count():
			pos = self.get_element_position(i)
			yield LeafElement(relative_offset = self.read_uint32(pos), name_hint = None, name_hash = self.read_uint32(pos + 4))
			i += 1

class IndexRoot(SubkeysList):
	"""This is a class for an index root, it provides methods to read this list."""

	SIGNATURE = b'ri'

	def elements(self):
		"""This method yields leaf offsets."""

		i = 0
		while i < self.get_elements_count():
			yield self.read_uint32(self.get_element_position(i))
			i += 1

SUBKEYS_LIST_TYPES = {
IndexLeaf.SIGNATURE: IndexLeaf,
FastLeaf.SIGNATURE: FastLeaf,
HashLeaf.SIGNATURE: HashLeaf,
IndexRoot.SIGNATURE: IndexRoot
}

class KeyNode(MemoryBlock):
	"""This is a class for a key node, it provides methods to access various fields of the key node.
	All methods are self-explanatory.
	"""

	HEADER_SIZE = 76

	def __init__(self, buf):
		super(KeyNode, self).__init__(buf)

		signature = self.get_signature()
		if signature != b'nk':
			raise ParseException('Invalid signature: {}'.format(signature))

	def get_signature(self):
		return self.read_binary(0, 2)

	def get_flags(self):
		return self.read_uint16(2)

	def get_subkeys_count(self):
		return self.read_uint32(20)

	def get_subkeys_list_offset(self):
		return self.read_uint32(28)

	def get_key_values_count(self):
		return self.read_uint32(36)

	def get_key_values_list_offset(self):
		return self.read_uint32(40)

	def get_key_name_length(self):
		return self.read_uint16(72)

	def is_name_ascii(self):
		return self.get_flags() & KEY_COMP_NAME > 0

class KeyValuesList(MemoryBlock):
	"""This is a class for a key values list, it provides methods to read this list."""

	def __init__(self, buf, elements_count):
		super(KeyValuesList, self).__init__(buf)

		self.elements_count = elements_count

	@staticmethod
	def get_length(elements_count):
		return elements_count * 4

	def elements(self):
		"""This method yields key value offsets."""

		i = 0
		while i < self.elements_count:
			yield self.read_uint32(i * 4)
			i += 1

class KeyValue(MemoryBlock):
	"""This is a class for a key value, it provides methods to access various fields of the key value.
	Most methods are self-explanatory.
	"""

	HEADER_SIZE = 20

	def __init__(self, buf):
		super(KeyValue, self).__init__(buf)

		signature = self.get_signature()
		if signature != b'vk':
			raise ParseException('Invalid signature: {}'.format(signature))

	def get_signature(self):
		return self.read_binary(0, 2)

	def get_value_name_length(self):
		return self.read_uint16(2)

	def get_data_size(self):
		return self.read_uint32(4)

	def get_data_size_real(self):
		"""Get and return a real size of data (the most significant bit is ignored)."""

		size = self.get_data_size()
		if size >= 0x80000000:
			size -= 0x80000000

		return size

	def is_data_inline(self):
		"""Return True if data is stored inline (in the data offset field)."""

		return self.get_data_size() >= 0x80000000

	def get_inline_data(self):
		return self.read_binary(8, 4)

	def get_data_offset(self):
		return self.read_uint32(8)

	def get_flags(self):
		return self.read_uint16(16)

	def is_name_ascii(self):
		return self.get_flags() & VALUE_COMP_NAME > 0

class SegmentsList(MemoryBlock):
	"""This is a class for a segments list (big data), it provides a method to read this list."""

	def __init__(self, buf, elements_count):
		super(SegmentsList, self).__init__(buf)

		self.elements_count = elements_count

	@staticmethod
	def get_length(elements_count):
		return elements_count * 4

	def elements(self):
		"""This method yields segment offsets."""

		i = 0
		while i < self.elements_count:
			yield self.read_uint32(i * 4)
			i += 1

class BigData(MemoryBlock):
	"""This is a class for a big data record, it provides methods to access various fields of the big data record.
	All methods are self-explanatory.
	"""

	HEADER_SIZE = 8

	def __init__(self, buf):
		super(BigData, self).__init__(buf)

		signature = self.get_signature()
		if signature != b'db':
			raise ParseException('Invalid signature: {}'.format(signature))

		segments_count = self.get_segments_count()
		if segments_count < 2:
			raise ParseException('Invalid number of segments: {}'.format(segments_count))

	def get_signature(self):
		return self.read_binary(0, 2)

	def get_segments_count(self):
		return self.read_uint16(2)

	def get_segments_list_offset(self):
		return self.read_uint32(4)
