# hivedig: dig raw value data out of registry hives
# (c) Maxim Suhanov
#
# This module implements a high-level interface.
# Most users should use this module to locate a key and to extract data of its value.

import logging

from .RegistryFile import RegistryException, CELL_OFFSET_NIL
from . import RegistryFile, RegistryRecords, RegistryUnicode

SYSKEY_KEY_PATH = ( 'CurrentControlSet', 'Control', 'Lsa' )
SYSKEY_VALUE_NAME = 'JD'

log = logging.getLogger(__name__)

class WalkException(RegistryException):
	"""This exception is raised when a walk error has occurred.
	A walk error is a generic error when traversing registry records (entities).
	"""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

class SubkeyNotFoundException(WalkException):
	"""This exception is raised when a subkey with a given name does not exist."""

	pass

class ValueNotFoundException(WalkException):
	"""This exception is raised when a value with a given name does not exist."""

	pass

class ValueListAbsentException(WalkException):
	"""This exception is raised when a key has no values list at all."""

	pass

class UnsupportedListTypeException(WalkException):
	"""This exception is raised when a subkeys list has an unknown (or misplaced) signature."""

	pass

def SplitPath(Path):
	"""Split a key path (with backslashes as separators) into a list of names. A leading backslash is ignored."""

	if Path.startswith('\\'):
		Path = Path[1 : ]

	if len(Path) == 0:
		return []

	return Path.split('\\')

def ReadKeyNode(primary_file, cell_relative_offset):
	"""Read the fixed part of a key node, return a KeyNode object."""

	buf = primary_file.read_cell(cell_relative_offset, 0, RegistryRecords.KeyNode.HEADER_SIZE)
	return RegistryRecords.KeyNode(buf)

def ReadKeyNodeName(primary_file, cell_relative_offset, key_node):
	"""Read, decode and return the name of a key node (this name follows the fixed part of the key node)."""

	name_buf = primary_file.read_cell(cell_relative_offset, RegistryRecords.KeyNode.HEADER_SIZE, key_node.get_key_name_length())
	return RegistryUnicode.DecodeName(name_buf, key_node.is_name_ascii())

def ReadKeyValue(primary_file, cell_relative_offset):
	"""Read the fixed part of a key value, return a KeyValue object."""

	buf = primary_file.read_cell(cell_relative_offset, 0, RegistryRecords.KeyValue.HEADER_SIZE)
	return RegistryRecords.KeyValue(buf)

def ReadKeyValueName(primary_file, cell_relative_offset, key_value):
	"""Read, decode and return the name of a key value (this name follows the fixed part of the key value)."""

	name_buf = primary_file.read_cell(cell_relative_offset, RegistryRecords.KeyValue.HEADER_SIZE, key_value.get_value_name_length())
	return RegistryUnicode.DecodeName(name_buf, key_value.is_name_ascii())

def ClassifySubkeysList(primary_file, list_offset):
	"""Read the signature of a subkeys list, return a class to parse this list or None (if the signature is unknown)."""

	signature = primary_file.read_cell(list_offset, 0, 2)
	return RegistryRecords.SUBKEYS_LIST_TYPES.get(signature)

def ReadSubkeysList(primary_file, list_offset, list_type):
	"""Read a subkeys list with all of its elements, return an object of a given class ('list_type')."""

	cell = primary_file.get_cell(list_offset)

	header = list_type(cell.read_data(0, list_type.HEADER_SIZE))
	elements_count = header.get_elements_count()

	# The number of elements comes from the file, the cell must be large enough to hold them.
	return list_type(cell.read_data(0, list_type.get_length(elements_count)))

def ResolveSubkey(primary_file, list_offset, list_type, name, case_sensitive = True, nested = False):
	"""Find a subkey by its name in a subkeys list, return an offset of its key node.
	The 'list_type' argument is a value returned by ClassifySubkeysList().
	When 'nested' is True, the list is referenced by an index root (so it cannot be another index root).
	"""

	if list_type is None:
		raise UnsupportedListTypeException('Unknown subkeys list, offset: {}'.format(list_offset))

	if list_type is RegistryRecords.IndexRoot and nested:
		raise UnsupportedListTypeException('Index root referenced by another index root, offset: {}'.format(list_offset))

	subkeys_list = ReadSubkeysList(primary_file, list_offset, list_type)

	if list_type is RegistryRecords.IndexRoot:
		for leaf_offset in subkeys_list.elements():
			leaf_type = ClassifySubkeysList(primary_file, leaf_offset)
			try:
				return ResolveSubkey(primary_file, leaf_offset, leaf_type, name, case_sensitive, True)
			except (SubkeyNotFoundException, UnsupportedListTypeException) as e:
				log.debug('Subkey not resolved in a leaf (offset: %d): %s', leaf_offset, e)
				continue

		raise SubkeyNotFoundException('Subkey not found in an index root, name: {}'.format(name))

	for leaf_element in subkeys_list.elements():
		subkey_offset = leaf_element.relative_offset

		key_node = ReadKeyNode(primary_file, subkey_offset)
		curr_name = ReadKeyNodeName(primary_file, subkey_offset, key_node)
		if RegistryUnicode.NamesEqual(curr_name, name, case_sensitive):
			return subkey_offset

	raise SubkeyNotFoundException('Subkey not found, name: {}'.format(name))

def ReadBigData(primary_file, big_data_offset):
	"""Read segments of big data, return them concatenated (as raw bytes).
	Segments are concatenated in the order of the segments list, the result may include trailing garbage.
	"""

	big_data = RegistryRecords.BigData(primary_file.read_cell(big_data_offset, 0, RegistryRecords.BigData.HEADER_SIZE))

	segments_count = big_data.get_segments_count()
	segments_list_offset = big_data.get_segments_list_offset()

	segments_list_buf = primary_file.read_cell(segments_list_offset, 0, RegistryRecords.SegmentsList.get_length(segments_count))
	segments_list = RegistryRecords.SegmentsList(segments_list_buf, segments_count)

	data = b''
	for segment_offset in segments_list.elements():
		cell = primary_file.get_cell(segment_offset)

		# Anything beyond this limit is padding.
		segment_size = min(cell.get_data_size(), RegistryRecords.DATA_SEGMENT_SIZE_MAX)
		data += cell.read_data(0, segment_size)

	return data

class RegistryHive(object):
	"""This is a high-level class for a registry hive."""

	registry_file = None
	"""A primary file of a hive (a RegistryFile.PrimaryFile object)."""

	def __init__(self, file_object, case_sensitive = True):
		"""When 'case_sensitive' is False, names of keys and values are compared in a case-insensitive manner."""

		self.registry_file = RegistryFile.PrimaryFile(file_object)
		self.case_sensitive = case_sensitive

	def root_key(self):
		"""Get and return a root key node (a RegistryKey object)."""

		return RegistryKey(self.registry_file, self.registry_file.get_root_cell_offset(), self.case_sensitive)

	def find_key(self, path):
		"""Find a key node by its path (without a name of a root key), return a key node (a RegistryKey object).
		The path is either a string (with backslashes as separators) or a sequence of names.
		If a key node is not found, SubkeyNotFoundException is raised.
		"""

		if isinstance(path, str):
			path = SplitPath(path)

		current_key = self.root_key()
		for name in path:
			log.debug('Looking for a subkey: %s, parent key offset: %d', name, current_key.cell_relative_offset)
			current_key = current_key.subkey(name)

		return current_key

	def extract(self, key_path, value_name):
		"""Find a key by its path, then find its value by name, return data of this value (as raw bytes)."""

		key = self.find_key(key_path)
		value = key.value(value_name)

		return value.data_raw()

class RegistryKey(object):
	"""This is a high-level class for a registry key."""

	registry_file = None
	"""A primary file of a hive (a RegistryFile.PrimaryFile object)."""

	key_node = None
	"""A KeyNode object."""

	def __init__(self, primary_file, cell_relative_offset, case_sensitive = True):
		self.registry_file = primary_file
		self.cell_relative_offset = cell_relative_offset
		self.case_sensitive = case_sensitive

		self.key_node = ReadKeyNode(self.registry_file, self.cell_relative_offset)

	def name(self):
		"""Get, decode and return a key name string."""

		return ReadKeyNodeName(self.registry_file, self.cell_relative_offset, self.key_node)

	def subkeys_count(self):
		"""Get and return a number of subkeys. Volatile subkeys are not counted."""

		return self.key_node.get_subkeys_count()

	def values_count(self):
		"""Get and return a number of key values."""

		return self.key_node.get_key_values_count()

	def subkey(self, name):
		"""This method returns a subkey by its name (a RegistryKey object).
		If there is no such subkey, SubkeyNotFoundException is raised.
		"""

		list_offset = self.key_node.get_subkeys_list_offset()
		if list_offset == CELL_OFFSET_NIL or self.subkeys_count() == 0:
			raise SubkeyNotFoundException('No subkeys, name: {}'.format(name))

		list_type = ClassifySubkeysList(self.registry_file, list_offset)
		subkey_offset = ResolveSubkey(self.registry_file, list_offset, list_type, name, self.case_sensitive)

		return RegistryKey(self.registry_file, subkey_offset, self.case_sensitive)

	def value(self, name = ''):
		"""This method returns a key value by its name (a RegistryValue object).
		When 'name' is empty, a default value is returned (if any).
		If there is no values list, ValueListAbsentException is raised.
		If there is no such value, ValueNotFoundException is raised.
		"""

		list_offset = self.key_node.get_key_values_list_offset()
		if list_offset == CELL_OFFSET_NIL:
			raise ValueListAbsentException('No values list, name: {}'.format(name))

		values_count = self.values_count()
		if values_count > 0:
			list_buf = self.registry_file.read_cell(list_offset, 0, RegistryRecords.KeyValuesList.get_length(values_count))
			values_list = RegistryRecords.KeyValuesList(list_buf, values_count)

			for value_offset in values_list.elements():
				curr_value = RegistryValue(self.registry_file, value_offset)
				if RegistryUnicode.NamesEqual(curr_value.name(), name, self.case_sensitive):
					return curr_value

		raise ValueNotFoundException('Value not found, name: {}'.format(name))

	def __str__(self):
		return 'RegistryKey, name: {}, subkeys: {}, values: {}'.format(self.name(), self.subkeys_count(), self.values_count())

class RegistryValue(object):
	"""This is a high-level class for a registry value."""

	registry_file = None
	"""A primary file of a hive (a RegistryFile.PrimaryFile object)."""

	key_value = None
	"""A KeyValue object."""

	def __init__(self, primary_file, cell_relative_offset):
		self.registry_file = primary_file
		self.cell_relative_offset = cell_relative_offset

		self.key_value = ReadKeyValue(self.registry_file, self.cell_relative_offset)

	def name(self):
		"""Get, decode and return a value name string."""

		return ReadKeyValueName(self.registry_file, self.cell_relative_offset, self.key_value)

	def data_size(self):
		"""Get and return a data size."""

		return self.key_value.get_data_size_real()

	def data_raw(self):
		"""Get and return data (as raw bytes)."""

		data_size = self.key_value.get_data_size_real()

		if self.key_value.is_data_inline():
			log.debug('Inline data, size: %d', data_size)
			return self.key_value.get_inline_data()[ : min(data_size, 4)]

		if data_size == 0:
			return b''

		data_offset = self.key_value.get_data_offset()

		# Hives with the minor version 3 (or less) do not use big data records.
		is_big_data = self.registry_file.minor_version > 3 and data_size > RegistryRecords.DATA_SEGMENT_SIZE_MAX
		if not is_big_data:
			log.debug('Data in a cell, size: %d, offset: %d', data_size, data_offset)
			return self.registry_file.read_cell(data_offset, 0, data_size)

		log.debug('Big data, size: %d, offset: %d', data_size, data_offset)
		data = ReadBigData(self.registry_file, data_offset)
		if len(data) < data_size:
			raise RegistryFile.ReadException('Big data is truncated (expected: {} bytes, read: {} bytes)'.format(data_size, len(data)))

		return data[ : data_size]

def ExtractSyskey(file_object, key_path = SYSKEY_KEY_PATH, value_name = SYSKEY_VALUE_NAME, case_sensitive = True):
	"""Locate the syskey material in a hive (a file object), return it as raw bytes.
	The data is not decrypted. Any error is propagated as is.
	"""

	hive = RegistryHive(file_object, case_sensitive)
	return hive.extract(key_path, value_name)
