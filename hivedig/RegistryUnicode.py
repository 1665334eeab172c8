# hivedig: dig raw value data out of registry hives
# (c) Maxim Suhanov
#
# This module implements functions to decode and compare names of keys and values.

from .RegistryFile import RegistryException

class InvalidTextException(RegistryException):
	"""This exception is raised when a name cannot be decoded."""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

def DecodeASCII(Buffer):
	"""Decode the ASCII (extended) string and return it."""

	return Buffer.decode('latin-1') # This is equal to adding a null byte after each character, and then running .decode('utf-16le').

def DecodeUnicode(Buffer):
	"""Decode the Unicode (UTF-16LE) string and return it. Surrogate pairs are supported, illegal characters are not replaced."""

	if len(Buffer) % 2 != 0:
		raise InvalidTextException('Odd number of bytes in a UTF-16LE string: {}'.format(len(Buffer)))

	try:
		return Buffer.decode('utf-16le')
	except UnicodeDecodeError as e:
		raise InvalidTextException('Invalid UTF-16LE string: {}'.format(e))

def DecodeName(Buffer, IsASCII):
	"""Decode the name of a key or a value. When 'IsASCII' is True, the name is stored as an extended ASCII string."""

	if IsASCII:
		return DecodeASCII(Buffer)

	return DecodeUnicode(Buffer)

def Upper(Name):
	"""Return the uppercase version of a name (to compare names in a case-insensitive manner)."""

	return Name.upper()

def NamesEqual(Name1, Name2, CaseSensitive = True):
	"""Compare two names, return True if they are equal."""

	if CaseSensitive:
		return Name1 == Name2

	return Upper(Name1) == Upper(Name2)
