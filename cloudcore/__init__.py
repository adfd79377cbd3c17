"""
CloudCore - credential lifecycle and resumable transfer engine.

Authenticates storage accounts over OAuth2, keeps their credentials encrypted
at rest, and moves files to and from the remote drive with a chunked,
resumable protocol. UI layers drive it through the provider facade.
"""

__version__ = "0.3.0"
