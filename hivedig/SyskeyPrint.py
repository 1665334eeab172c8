# hivedig: dig raw value data out of registry hives
# (c) Maxim Suhanov
#
# This module implements a command line tool to print the syskey material (raw data, not decrypted) from a SYSTEM hive.

import argparse
import logging
import sys
from binascii import hexlify

from rich.console import Console
from rich.logging import RichHandler

from .RegistryFile import RegistryException
from . import Registry, __version__

def setup_logging(level = logging.INFO):
	console = Console(stderr = True)
	rich_handler = RichHandler(
		console = console,
		show_time = True,
		show_path = False,
		rich_tracebacks = True,
		markup = False
	)

	logging.basicConfig(
		level = level,
		format = '%(message)s',
		datefmt = '[%X]',
		handlers = [ rich_handler ]
	)

	return console

def parse_args(argv = None):
	parser = argparse.ArgumentParser(prog = 'hivedig-syskey', description = 'Print the syskey material (raw value data) from a registry hive.')
	parser.add_argument('hive', help = 'a registry hive (primary file)')
	parser.add_argument('-k', '--key', default = '\\'.join(Registry.SYSKEY_KEY_PATH), help = 'a key path, backslash-separated, without a root key (default: %(default)s)')
	parser.add_argument('-n', '--value', default = Registry.SYSKEY_VALUE_NAME, help = 'a value name (default: %(default)s)')
	parser.add_argument('-i', '--ignore-case', action = 'store_true', help = 'compare names of keys and values in a case-insensitive manner')
	parser.add_argument('-r', '--raw', action = 'store_true', help = 'write raw bytes instead of a hex string')
	parser.add_argument('-v', '--verbose', action = 'store_true', help = 'print debug messages')
	parser.add_argument('--version', action = 'version', version = '%(prog)s ' + __version__)

	return parser.parse_args(argv)

def main(argv = None):
	args = parse_args(argv)

	if args.verbose:
		setup_logging(logging.DEBUG)
	else:
		setup_logging()

	try:
		with open(args.hive, 'rb') as f:
			data = Registry.ExtractSyskey(f, Registry.SplitPath(args.key), args.value, not args.ignore_case)
	except (RegistryException, OSError) as e:
		logging.error('Cannot extract data from {}: {} ({})'.format(args.hive, e, type(e).__name__))
		return 1

	if args.raw:
		sys.stdout.buffer.write(data)
		sys.stdout.flush()
	else:
		print(hexlify(data).decode())

	return 0
