from setuptools import setup
from hivedig import __version__

setup(
	name = 'hivedig',
	version = __version__,
	license = 'GPLv3',
	packages = [ 'hivedig' ],
	provides = [ 'hivedig' ],
	scripts = [ 'hivedig-syskey' ],
	install_requires = [ 'rich' ],
	extras_require = { 'test': [ 'pytest' ] },
	python_requires = '>=3.6',
	description = 'Locate the syskey material (and other raw value data) in registry hives',
	classifiers = [
		'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
		'Operating System :: OS Independent',
		'Programming Language :: Python :: 3',
		'Development Status :: 4 - Beta'
	]
)
