"""Access to the operating system text clipboard"""

import ctypes
import hashlib
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import pyperclip
from loguru import logger


class ClipboardSource(ABC):
    """
    Reads the OS clipboard's change counter and text.

    None from either read means the clipboard could not be read right now;
    implementations never raise for that.
    """

    @abstractmethod
    def change_count(self) -> Optional[int]:
        """Monotonically increasing counter bumped on every clipboard write"""

    @abstractmethod
    def read_text(self) -> Optional[str]:
        """Current plain text on the clipboard, None if there is none"""

    @abstractmethod
    def write_text(self, text: str) -> bool:
        """Put text on the clipboard"""

    def source_app(self) -> Dict[str, str]:
        """
        Describe the application that owns the clipboard change

        Returns:
            Item metadata (source_app_name, source_app_bundle_id,
            source_app_path); empty where the platform cannot tell
        """
        return {}


class PyperclipSource(ClipboardSource):
    """
    Portable source backed by pyperclip.

    pyperclip has no change counter, so one is derived from the content
    hash: it increases each time the clipboard text differs from the last
    text seen.
    """

    def __init__(self):
        self._counter = 0
        self._last_hash: Optional[str] = None
        self._lock = threading.Lock()

    def _paste(self) -> Optional[str]:
        try:
            content = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            logger.debug(f"Clipboard unavailable: {e}")
            return None
        except Exception as e:
            logger.debug(f"Clipboard read failed: {e}")
            return None

        if not isinstance(content, str):
            return None
        return content

    def change_count(self) -> Optional[int]:
        content = self._paste()
        if content is None:
            return None

        content_hash = hashlib.sha256(content.encode('utf-8', errors='surrogatepass')).hexdigest()

        with self._lock:
            if content_hash != self._last_hash:
                self._last_hash = content_hash
                self._counter += 1
            return self._counter

    def read_text(self) -> Optional[str]:
        return self._paste() or None

    def write_text(self, text: str) -> bool:
        try:
            pyperclip.copy(text)
            return True
        except pyperclip.PyperclipException as e:
            logger.error(f"Failed to write clipboard: {e}")
            return False


class WindowsClipboardSource(PyperclipSource):
    """Uses the native clipboard sequence number so text is only read on change"""

    PROCESS_QUERY_LIMITED_INFORMATION = 0x1000

    def __init__(self):
        super().__init__()
        import ctypes.wintypes as wintypes

        self._user32 = ctypes.windll.user32
        self._kernel32 = ctypes.windll.kernel32

        self._user32.GetClipboardSequenceNumber.restype = ctypes.c_ulong
        self._user32.GetForegroundWindow.restype = wintypes.HWND
        self._user32.GetWindowThreadProcessId.argtypes = [wintypes.HWND, ctypes.POINTER(wintypes.DWORD)]
        self._user32.GetWindowThreadProcessId.restype = wintypes.DWORD
        self._kernel32.OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
        self._kernel32.OpenProcess.restype = wintypes.HANDLE
        self._kernel32.QueryFullProcessImageNameW.argtypes = [
            wintypes.HANDLE, wintypes.DWORD, wintypes.LPWSTR, ctypes.POINTER(wintypes.DWORD)
        ]
        self._kernel32.QueryFullProcessImageNameW.restype = wintypes.BOOL
        self._kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
        self._kernel32.CloseHandle.restype = wintypes.BOOL
        self._wintypes = wintypes

    def change_count(self) -> Optional[int]:
        try:
            return int(self._user32.GetClipboardSequenceNumber())
        except OSError as e:
            logger.debug(f"Failed to query clipboard sequence number: {e}")
            return None

    def _process_path(self, pid: int) -> Optional[str]:
        handle = self._kernel32.OpenProcess(self.PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
        if not handle:
            return None
        try:
            size = self._wintypes.DWORD(260)
            buffer = ctypes.create_unicode_buffer(size.value)
            if self._kernel32.QueryFullProcessImageNameW(handle, 0, buffer, ctypes.byref(size)):
                return buffer.value or None
            return None
        finally:
            self._kernel32.CloseHandle(handle)

    def source_app(self) -> Dict[str, str]:
        """Foreground window's executable, taken as the copying application"""
        try:
            hwnd = self._user32.GetForegroundWindow()
            if not hwnd:
                return {}

            pid = self._wintypes.DWORD()
            self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
            if not pid.value:
                return {}

            path = self._process_path(int(pid.value))
        except OSError as e:
            logger.debug(f"Failed to identify source application: {e}")
            return {}

        if not path:
            return {}
        return {'source_app_name': Path(path).stem, 'source_app_path': path}


def get_clipboard_source() -> ClipboardSource:
    """Return the best clipboard source for this platform"""
    if sys.platform == 'win32':
        return WindowsClipboardSource()
    return PyperclipSource()
