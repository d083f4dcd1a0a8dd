"""
Root-level shared test fixtures.

Inherited by the db, api, and top-level test suites.
"""

from __future__ import annotations

import pytest

from accinfo.config import reset_config
from accinfo.db.crypto import KdfParams

SAMPLE_EXPORT = """<?xml version="1.0" encoding="utf-8" standalone="yes"?>
<KeePassFile>
  <Meta>
    <Generator>KeePass</Generator>
    <RecycleBinEnabled>True</RecycleBinEnabled>
    <RecycleBinUUID>cmVjeWNsZWJpbnV1aWQwMA==</RecycleBinUUID>
  </Meta>
  <Root>
    <Group>
      <UUID>cm9vdGdyb3VwdXVpZDAwMA==</UUID>
      <Name>Database</Name>
      <Entry>
        <UUID>ZW50cnlvbmV1dWlkMDAwMA==</UUID>
        <String><Key>Title</Key><Value>Bank</Value></String>
        <String><Key>UserName</Key><Value>alice</Value></String>
        <String><Key>Password</Key><Value>s3cr3t</Value></String>
        <String><Key>URL</Key><Value>https://bank.example.com</Value></String>
        <String><Key>Notes</Key><Value>checking account</Value></String>
        <String><Key>PIN</Key><Value>0000</Value></String>
        <History>
          <Entry>
            <UUID>ZW50cnlvbmV1dWlkMDAwMA==</UUID>
            <String><Key>Title</Key><Value>Old Bank</Value></String>
          </Entry>
        </History>
      </Entry>
      <Group>
        <UUID>aW50ZXJuZXRncm91cHV1aWQ=</UUID>
        <Name>Internet</Name>
        <Entry>
          <UUID>ZW50cnl0d291dWlkMDAwMA==</UUID>
          <String><Key>Title</Key><Value>Banking App</Value></String>
          <String><Key>UserName</Key><Value>Alice</Value></String>
          <String><Key>Password</Key><Value>app-pass</Value></String>
          <String><Key>URL</Key><Value>https://app.bank.example.com</Value></String>
        </Entry>
        <Group>
          <UUID>bWFpbGdyb3VwdXVpZDAwMA==</UUID>
          <Name>Mail</Name>
          <Entry>
            <UUID>ZW50cnl0aHJlZXV1aWQwMA==</UUID>
            <String><Key>Title</Key><Value>Email</Value></String>
            <String><Key>UserName</Key><Value>bob</Value></String>
            <String><Key>Password</Key><Value>hunter2</Value></String>
            <String><Key>URL</Key><Value>https://mail.example.org</Value></String>
            <String><Key>Notes</Key><Value>personal inbox</Value></String>
          </Entry>
        </Group>
      </Group>
      <Group>
        <UUID>cmVjeWNsZWJpbnV1aWQwMA==</UUID>
        <Name>Recycle Bin</Name>
        <Entry>
          <UUID>ZGVsZXRlZHV1aWQwMDAwMA==</UUID>
          <String><Key>Title</Key><Value>Deleted Thing</Value></String>
        </Entry>
      </Group>
    </Group>
  </Root>
</KeePassFile>
"""


@pytest.fixture
def sample_export() -> str:
    """Three live entries (Bank, Banking App, Email) plus history and a recycle bin."""
    return SAMPLE_EXPORT


@pytest.fixture
def fast_kdf() -> KdfParams:
    """Cheap scrypt parameters so tests don't pay the production work factor."""
    return KdfParams.generate(log_n=4, r=8, p=1)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove accinfo env vars that leak between tests."""
    for key in [
        "ACCINFO_DATABASE",
        "ACCINFO_HOST",
        "ACCINFO_PORT",
        "ACCINFO_API_TOKEN",
        "ACCINFO_RATE_LIMIT",
        "ACCINFO_LOG_LEVEL",
        "ACCINFO_LOG_FILE",
        "ACCINFO_LOG_MAX_BYTES",
        "ACCINFO_KDF_LOG_N",
        "ACCINFO_PASSWORD",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
