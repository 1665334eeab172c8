# hivedig: dig raw value data out of registry hives
# (c) Maxim Suhanov
#
# This module implements a low-level interface to read registry hives (a base block, hive bins, cells).

from struct import unpack

MAJOR_VERSION_NUMBERS_SUPPORTED = set([1])
MINOR_VERSION_NUMBERS_SUPPORTED = set([2, 3, 4, 5, 6]) # The old cell format (version 1) is not supported.

FILE_TYPE_PRIMARY = 0 # Primary (normal) file.

FILE_FORMAT_DIRECT_MEMORY_LOAD = 1

BASE_BLOCK_LENGTH_PRIMARY = 4096

HIVE_BIN_SIZE_ALIGNMENT = 4096

CELL_OFFSET_NIL = 0xFFFFFFFF
CELL_HEADER_SIZE = 4
CELL_SIZE_MIN = 8

class RegistryException(Exception):
	"""This is a top-level exception for this module."""

	pass

class ReadException(RegistryException):
	"""This exception is raised when a read error has occurred (not enough data to read).
	This exception does not supersede standard I/O exceptions.
	"""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

class ParseException(RegistryException):
	"""This exception is raised when a registry record is invalid (a signature does not match)."""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

class NotSupportedException(RegistryException):
	"""This exception is raised when something is not supported."""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

class BaseBlockException(ParseException):
	"""This exception is raised when something is invalid in a base block."""

	pass

class HiveBinException(ParseException):
	"""This exception is raised when something is invalid in a hive bin."""

	pass

class HiveCellException(ParseException):
	"""This exception is raised when something is wrong with a hive cell."""

	pass

class RegistryFile(object):
	"""This is a generic class for registry files, it provides low-level methods for reading and parsing data.
	Every read is done at an explicit (absolute) position, there is no cursor to be shared between callers.
	"""

	def __init__(self, file_object, file_offset = 0):
		self.file_object = file_object
		self.file_offset = file_offset

	def read_binary(self, pos, length):
		if pos < 0 or length < 0:
			raise ReadException('Cannot read data (negative offset or length)')

		try:
			self.file_object.seek(self.file_offset + pos)
			b = self.file_object.read(length)
		except (OverflowError, ValueError):
			raise ReadException('Cannot read data (offset overflow)')

		if len(b) == length:
			return b

		raise ReadException('Cannot read data (expected: {} bytes, read: {} bytes)'.format(length, len(b)))

	def read_uint32(self, pos):
		b = self.read_binary(pos, 4)
		return unpack('<L', b)[0]

	def read_int32(self, pos):
		b = self.read_binary(pos, 4)
		return unpack('<l', b)[0]

class BaseBlock(RegistryFile):
	"""This is a class for a base block of a registry file, it provides methods to access various fields of the base block.
	Most methods are self-explanatory.
	"""

	def __init__(self, file_object):
		super(BaseBlock, self).__init__(file_object)

		signature = self.get_signature()
		if signature != b'regf':
			raise BaseBlockException('Invalid signature: {}'.format(signature))

		file_format = self.get_file_format()
		if file_format != FILE_FORMAT_DIRECT_MEMORY_LOAD:
			raise NotSupportedException('File format not supported: {}'.format(file_format))

		major_version = self.get_major_version()
		if major_version not in MAJOR_VERSION_NUMBERS_SUPPORTED:
			raise NotSupportedException('Major version not supported: {}'.format(major_version))

		minor_version = self.get_minor_version()
		if minor_version not in MINOR_VERSION_NUMBERS_SUPPORTED:
			raise NotSupportedException('Minor version not supported: {}'.format(minor_version))

		file_type = self.get_file_type()
		if file_type != FILE_TYPE_PRIMARY:
			raise NotSupportedException('File type not supported: {}'.format(file_type))

		hbins_data_size = self.get_hbins_data_size()
		if hbins_data_size < HIVE_BIN_SIZE_ALIGNMENT or hbins_data_size % HIVE_BIN_SIZE_ALIGNMENT != 0:
			raise BaseBlockException('Invalid hive bins data size: {}'.format(hbins_data_size))

	def get_signature(self):
		return self.read_binary(0, 4)

	def get_major_version(self):
		return self.read_uint32(20)

	def get_minor_version(self):
		return self.read_uint32(24)

	def get_file_type(self):
		return self.read_uint32(28)

	def get_file_format(self):
		return self.read_uint32(32)

	def get_root_cell_offset(self):
		return self.read_uint32(36)

	def get_hbins_data_size(self):
		return self.read_uint32(40)

class HiveBin(RegistryFile):
	"""This is a class for a hive bin header, it provides methods to access various fields of the hive bin header.
	All methods are self-explanatory.
	"""

	def __init__(self, file_object, file_offset):
		super(HiveBin, self).__init__(file_object, file_offset)

		signature = self.get_signature()
		if signature != b'hbin':
			raise HiveBinException('Invalid signature: {}'.format(signature))

		hbin_offset = self.get_offset()
		if hbin_offset != file_offset - BASE_BLOCK_LENGTH_PRIMARY:
			raise HiveBinException('Offset mismatch: {} != {} - {}'.format(hbin_offset, file_offset, BASE_BLOCK_LENGTH_PRIMARY))

		hbin_size = self.get_size()
		if hbin_size < HIVE_BIN_SIZE_ALIGNMENT or hbin_size % HIVE_BIN_SIZE_ALIGNMENT != 0:
			raise HiveBinException('Invalid size: {}'.format(hbin_size))

	def get_signature(self):
		return self.read_binary(0, 4)

	def get_offset(self):
		return self.read_uint32(4)

	def get_size(self):
		return self.read_uint32(8)

class HiveCell(RegistryFile):
	"""This is a class for a hive cell, it provides methods to deal with the hive cell.
	Most methods are self-explanatory.
	"""

	def __init__(self, file_object, file_offset):
		super(HiveCell, self).__init__(file_object, file_offset)

		cell_absolute_size = self.get_absolute_size()
		if cell_absolute_size < CELL_SIZE_MIN:
			raise HiveCellException('Invalid cell size (absolute): {}'.format(cell_absolute_size))

	def get_size(self):
		return self.read_int32(0)

	def get_absolute_size(self):
		return abs(self.get_size())

	def get_data_size(self):
		return self.get_absolute_size() - CELL_HEADER_SIZE

	def read_data(self, pos, length):
		"""Read and return 'length' bytes of cell data starting at 'pos' (relative to the start of the cell data)."""

		data_size = self.get_data_size()
		if pos + length > data_size:
			raise ReadException('Cannot read cell data (requested: {} bytes at {}, available: {} bytes)'.format(length, pos, data_size))

		return self.read_binary(CELL_HEADER_SIZE + pos, length)

class PrimaryFile(RegistryFile):
	"""This is a class for a primary file, it provides methods to access cells.
	Cell offsets are relative to the start of the hive bins data.
	"""

	baseblock = None
	"""A BaseBlock object."""

	def __init__(self, file_object):
		super(PrimaryFile, self).__init__(file_object)

		self.baseblock = BaseBlock(self.file_object)
		self.hbins_data_size = self.baseblock.get_hbins_data_size()
		self.minor_version = self.baseblock.get_minor_version()

		HiveBin(self.file_object, BASE_BLOCK_LENGTH_PRIMARY)

	def get_root_cell_offset(self):
		return self.baseblock.get_root_cell_offset()

	def get_cell(self, cell_relative_offset):
		"""Get and return a cell (a HiveCell object) by its offset."""

		if cell_relative_offset == CELL_OFFSET_NIL:
			raise ReadException('Got CELL_OFFSET_NIL')

		if cell_relative_offset + CELL_HEADER_SIZE > self.hbins_data_size:
			raise ReadException('Cell offset out of hive bins data (relative): {}'.format(cell_relative_offset))

		cell = HiveCell(self.file_object, BASE_BLOCK_LENGTH_PRIMARY + cell_relative_offset)
		if cell_relative_offset + cell.get_absolute_size() > self.hbins_data_size:
			raise ReadException('Cell overruns hive bins data, offset (relative): {}, size: {}'.format(cell_relative_offset, cell.get_absolute_size()))

		return cell

	def read_cell(self, cell_relative_offset, pos, length):
		"""Read and return 'length' bytes of cell data starting at 'pos' from a cell at a given offset."""

		return self.get_cell(cell_relative_offset).read_data(pos, length)
