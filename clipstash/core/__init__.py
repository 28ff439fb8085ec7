"""Clipboard history engine"""

from .item import ClipItem, InvalidContentError, normalize_content

__all__ = ['ClipItem', 'InvalidContentError', 'normalize_content']
