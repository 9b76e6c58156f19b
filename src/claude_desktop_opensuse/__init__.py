"""Build Claude Desktop RPM and AppImage packages from the Windows installer."""

__version__ = '0.3.0'
