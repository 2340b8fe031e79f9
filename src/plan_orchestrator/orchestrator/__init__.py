"""Local-first, file-backed orchestration components.

Every service reads and writes JSON documents under a single artifacts
directory. There is no shared in-process state between services.
"""
