"""Test doubles for storage, builds and translation responses"""

import json
import stat
import time
from pathlib import Path

from legacyparity.errors import StorageAccessError
from legacyparity.execution.build_executor import BuildResult


class InMemoryStore:
    """ObjectStore stand-in keeping objects in a dict"""

    def __init__(self, objects=None, fail_puts=False, fail_presign=False):
        self.objects = dict(objects or {})
        self.fail_puts = fail_puts
        self.fail_presign = fail_presign

    def get(self, bucket, key):
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise StorageAccessError(f"NoSuchKey: s3://{bucket}/{key}")

    def put(self, bucket, key, data):
        if self.fail_puts:
            raise StorageAccessError(f"S3 PutObject failed for s3://{bucket}/{key}")
        self.objects[(bucket, key)] = data

    def presign_get(self, bucket, key, ttl):
        if self.fail_presign:
            raise StorageAccessError("presign failed")
        return f"https://{bucket}.s3.amazonaws.com/{key}?X-Amz-Expires={ttl}"


def make_script(work_dir, body, name="prog"):
    """Write an executable shell script into work_dir and return its path"""
    path = Path(work_dir) / name
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def process_gone(pid, wait_seconds=5.0):
    """True once pid has exited (a zombie counts as exited)"""
    stat_file = Path(f"/proc/{pid}/stat")
    deadline = time.time() + wait_seconds
    while time.time() < deadline:
        try:
            state = stat_file.read_text().rsplit(")", 1)[1].split()[0]
        except (FileNotFoundError, ProcessLookupError):
            return True
        if state == "Z":
            return True
        time.sleep(0.1)
    return False


class ScriptBuilder:
    """
    BuildExecutor stand-in: the "source" is a shell script body.

    A source containing COMPILE-ERROR fails to build with that line as the
    diagnostic.
    """

    def __init__(self):
        self.calls = []

    def build(self, variant, source_text, work_dir):
        self.calls.append((variant, Path(work_dir)))
        for line in source_text.splitlines():
            if "COMPILE-ERROR" in line:
                return BuildResult(variant=variant, success=False, diagnostic=f"error: {line.strip()}")

        artifact = make_script(work_dir, source_text)
        return BuildResult(variant=variant, success=True, diagnostic="", artifact_path=artifact)


def gemini_body(inner, thought=None):
    """Build a generateContent response body around an inner JSON object"""
    parts = []
    if thought is not None:
        parts.append({"text": thought, "thought": True})
    parts.append({"text": json.dumps(inner)})
    return json.dumps({"candidates": [{"content": {"role": "model", "parts": parts}}]})
