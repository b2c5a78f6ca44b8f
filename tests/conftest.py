import boto3
import pytest

from rekon.conns import AWSClient


ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
ASSOCIATION_ID = "fa2c1d38-6b5c-4b8a-9e3f-0b1c2d3e4f5a"


@pytest.fixture(autouse=True)
def rekon_home(tmp_path, monkeypatch):
    """Keep stored records inside the test's temp directory."""
    home = tmp_path / "rekon-home"
    monkeypatch.setenv("REKON_HOME", str(home))
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    return home


@pytest.fixture
def aws_client():
    session = boto3.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name=REGION,
    )
    return AWSClient(session=session, account_id=ACCOUNT_ID)
