"""
Tests for aws_ssm_association lifecycle handlers against a stubbed SSM client.
"""

import threading
import time

import pytest
from botocore.stub import Stubber

from rekon.errors import (
    NotFoundError,
    RemoteError,
    ResourceValidationError,
    UnexpectedStateError,
    WaitCancelledError,
)
from rekon.ssm import association
from rekon.ssm.status import status_association, wait_association_success
from rekon.state import ResourceData

from conftest import ACCOUNT_ID, ASSOCIATION_ID


ARN = f"arn:aws:ssm:us-east-1:{ACCOUNT_ID}:association/{ASSOCIATION_ID}"


def describe_response(**overrides):
    description = {
        "AssociationId": ASSOCIATION_ID,
        "Name": "AWS-RunShellScript",
        "AssociationName": "nightly-patch",
        "DocumentVersion": "$DEFAULT",
        "ScheduleExpression": "rate(30 minutes)",
        "Parameters": {"commands": ["uptime"]},
        "Targets": [{"Key": "tag:Env", "Values": ["prod"]}],
        "ApplyOnlyAtCronInterval": False,
        "Overview": {"Status": "Success", "DetailedStatus": "Success"},
    }
    description.update(overrides)
    return {"AssociationDescription": description}


def base_config(**extra):
    config = {
        "name": "AWS-RunShellScript",
        "association_name": "nightly-patch",
        "schedule_expression": "rate(30 minutes)",
        "parameters": {"commands": "uptime"},
        "targets": [{"key": "tag:Env", "values": ["prod"]}],
    }
    config.update(extra)
    return config


CREATE_PARAMS = {
    "Name": "AWS-RunShellScript",
    "AssociationName": "nightly-patch",
    "ScheduleExpression": "rate(30 minutes)",
    "Parameters": {"commands": ["uptime"]},
    "Targets": [{"Key": "tag:Env", "Values": ["prod"]}],
}


class TestCreate:
    """Test association creation."""

    def test_create_sends_only_configured_fields(self, aws_client):
        d = ResourceData(base_config())

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response(
                "create_association",
                {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}},
                CREATE_PARAMS,
            )
            stubber.add_response("describe_association", describe_response(), {"AssociationId": ASSOCIATION_ID})

            association.create(d, aws_client)
            stubber.assert_no_pending_responses()

        assert d.id == ASSOCIATION_ID
        assert d.get("arn") == ARN
        assert d.get("association_id") == ASSOCIATION_ID
        assert d.get("document_version") == "$DEFAULT"
        assert d.get("parameters") == {"commands": "uptime"}
        assert d.get("targets") == [{"key": "tag:Env", "values": ["prod"]}]
        assert d.get("output_location") is None
        assert d.get("max_errors") is None
        assert d.is_new_resource is False

    def test_create_with_all_fields(self, aws_client):
        d = ResourceData(base_config(
            apply_only_at_cron_interval=True,
            document_version="2",
            max_concurrency="10%",
            max_errors="0",
            compliance_severity="HIGH",
            automation_target_parameter_name="InstanceId",
            output_location=[{"s3_bucket_name": "ssm-output", "s3_key_prefix": "runs"}],
        ))
        params = dict(CREATE_PARAMS)
        params.update({
            "ApplyOnlyAtCronInterval": True,
            "DocumentVersion": "2",
            "MaxConcurrency": "10%",
            "MaxErrors": "0",
            "ComplianceSeverity": "HIGH",
            "AutomationTargetParameterName": "InstanceId",
            "OutputLocation": {"S3Location": {"OutputS3BucketName": "ssm-output", "OutputS3KeyPrefix": "runs"}},
        })
        remote = describe_response(
            ApplyOnlyAtCronInterval=True,
            DocumentVersion="2",
            MaxConcurrency="10%",
            MaxErrors="0",
            ComplianceSeverity="HIGH",
            AutomationTargetParameterName="InstanceId",
            OutputLocation={"S3Location": {"OutputS3BucketName": "ssm-output", "OutputS3KeyPrefix": "runs"}},
        )

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, params)
            stubber.add_response("describe_association", remote, {"AssociationId": ASSOCIATION_ID})

            association.create(d, aws_client)

        assert d.get("apply_only_at_cron_interval") is True
        assert d.get("output_location") == [{"s3_bucket_name": "ssm-output", "s3_key_prefix": "runs"}]
        assert d.get("compliance_severity") == "HIGH"

    def test_create_with_deprecated_instance_id(self, aws_client):
        d = ResourceData({"name": "AWS-RunShellScript", "instance_id": "i-0123456789abcdef0"})

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response(
                "create_association",
                {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}},
                {"Name": "AWS-RunShellScript", "InstanceId": "i-0123456789abcdef0"},
            )
            stubber.add_response(
                "describe_association",
                {"AssociationDescription": {
                    "AssociationId": ASSOCIATION_ID,
                    "Name": "AWS-RunShellScript",
                    "InstanceId": "i-0123456789abcdef0",
                }},
                {"AssociationId": ASSOCIATION_ID},
            )

            association.create(d, aws_client)

        assert d.get("instance_id") == "i-0123456789abcdef0"
        assert d.get("targets") == []

    def test_invalid_config_makes_no_call(self, aws_client):
        d = ResourceData(base_config(max_concurrency="0"))

        with Stubber(aws_client.ssm_conn()) as stubber:
            with pytest.raises(ResourceValidationError):
                association.create(d, aws_client)
            stubber.assert_no_pending_responses()

        assert d.id == ""

    def test_remote_error_is_wrapped(self, aws_client):
        d = ResourceData(base_config())

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error(
                "create_association",
                service_error_code="InvalidDocument",
                service_message="Document doesn't exist",
                http_status_code=400,
            )
            with pytest.raises(RemoteError) as exc_info:
                association.create(d, aws_client)

        assert exc_info.value.code == "InvalidDocument"
        assert "creating SSM association" in str(exc_info.value)
        assert d.id == ""

    def test_not_found_during_create_is_an_error(self, aws_client):
        d = ResourceData(base_config())

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, CREATE_PARAMS)
            stubber.add_client_error("describe_association", service_error_code="AssociationDoesNotExist", http_status_code=400)

            with pytest.raises(NotFoundError, match="reading SSM Association"):
                association.create(d, aws_client)

        assert d.id == ASSOCIATION_ID

    def test_zero_wait_timeout_skips_status_query(self, aws_client):
        d = ResourceData(base_config(wait_for_success_timeout_seconds=0))

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, CREATE_PARAMS)
            stubber.add_response("describe_association", describe_response(), {"AssociationId": ASSOCIATION_ID})

            association.create(d, aws_client)
            stubber.assert_no_pending_responses()

        assert d.get("wait_for_success_timeout_seconds") == 0

    def test_waits_for_success(self, aws_client):
        d = ResourceData(base_config(wait_for_success_timeout_seconds=30))

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, CREATE_PARAMS)
            stubber.add_response(
                "describe_association",
                describe_response(Overview={"Status": "Pending", "DetailedStatus": "Creating"}),
                {"AssociationId": ASSOCIATION_ID},
            )
            stubber.add_response("describe_association", describe_response(), {"AssociationId": ASSOCIATION_ID})
            stubber.add_response("describe_association", describe_response(), {"AssociationId": ASSOCIATION_ID})

            association.create(d, aws_client)
            stubber.assert_no_pending_responses()

        assert d.id == ASSOCIATION_ID

    def test_failed_status_reports_detail(self, aws_client):
        d = ResourceData(base_config(wait_for_success_timeout_seconds=30))

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, CREATE_PARAMS)
            stubber.add_response(
                "describe_association",
                describe_response(Overview={"Status": "Failed", "DetailedStatus": "Document failed on 2 targets"}),
                {"AssociationId": ASSOCIATION_ID},
            )

            with pytest.raises(UnexpectedStateError) as exc_info:
                association.create(d, aws_client)

        message = str(exc_info.value)
        assert f"waiting for SSM Association ({ASSOCIATION_ID}) to be Success" in message
        assert "Document failed on 2 targets" in message


class TestRead:
    """Test refreshing an existing record."""

    def test_missing_association_clears_id(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error("describe_association", service_error_code="AssociationDoesNotExist", http_status_code=400)
            association.read(d, aws_client)

        assert d.id == ""

    def test_empty_response_clears_id(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("describe_association", {}, {"AssociationId": ASSOCIATION_ID})
            association.read(d, aws_client)

        assert d.id == ""

    def test_other_errors_propagate(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error("describe_association", service_error_code="InternalServerError", http_status_code=500)
            with pytest.raises(RemoteError):
                association.read(d, aws_client)

        assert d.id == ASSOCIATION_ID

    def test_flattens_remote_values(self, aws_client):
        d = ResourceData(resource_id=ASSOCIATION_ID)
        remote = describe_response(
            Parameters={"commands": ["uptime", "df -h"]},
            Targets=[
                {"Key": "tag:Role", "Values": ["web", "api"]},
                {"Key": "tag:Env", "Values": ["prod"]},
            ],
            OutputLocation={"S3Location": {"OutputS3BucketName": "ssm-output", "OutputS3Region": "us-west-2"}},
        )

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("describe_association", remote, {"AssociationId": ASSOCIATION_ID})
            association.read(d, aws_client)

        assert d.get("parameters") == {"commands": "uptime,df -h"}
        assert d.get("targets") == [
            {"key": "tag:Role", "values": ["web", "api"]},
            {"key": "tag:Env", "values": ["prod"]},
        ]
        assert d.get("output_location") == [{"s3_bucket_name": "ssm-output", "s3_region": "us-west-2"}]


class TestUpdate:
    """Test updates send the full set of mutable fields."""

    def test_update_sends_every_configured_field(self, aws_client):
        d = ResourceData(base_config(max_errors="5"), resource_id=ASSOCIATION_ID)
        params = {
            "AssociationId": ASSOCIATION_ID,
            "AssociationName": "nightly-patch",
            "ScheduleExpression": "rate(30 minutes)",
            "MaxErrors": "5",
            "Parameters": {"commands": ["uptime"]},
            "Targets": [{"Key": "tag:Env", "Values": ["prod"]}],
        }

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("update_association", describe_response(MaxErrors="5"), params)
            stubber.add_response("describe_association", describe_response(MaxErrors="5"), {"AssociationId": ASSOCIATION_ID})

            association.update(d, aws_client)
            stubber.assert_no_pending_responses()

        assert d.get("max_errors") == "5"

    def test_update_error(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error("update_association", service_error_code="AssociationVersionLimitExceeded")
            with pytest.raises(RemoteError, match="updating SSM association"):
                association.update(d, aws_client)


class TestDelete:
    """Test deletion is idempotent."""

    def test_delete(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("delete_association", {}, {"AssociationId": ASSOCIATION_ID})
            association.delete(d, aws_client)

        assert d.id == ""

    def test_delete_missing_association_succeeds(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error("delete_association", service_error_code="AssociationDoesNotExist", http_status_code=400)
            association.delete(d, aws_client)

        assert d.id == ""

    def test_delete_other_error(self, aws_client):
        d = ResourceData(base_config(), resource_id=ASSOCIATION_ID)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_client_error("delete_association", service_error_code="AccessDeniedException")
            with pytest.raises(RemoteError):
                association.delete(d, aws_client)

        assert d.id == ASSOCIATION_ID


def test_migrate_state_v0():
    d = ResourceData({"name": "AWS-RunShellScript"}, resource_id=ASSOCIATION_ID)

    migrated = association.migrate_state(0, d)

    assert migrated.get("association_id") == ASSOCIATION_ID
    assert migrated.schema_version == 1


class TestStatus:
    """Test the status refresh and cancelling a wait for Success."""

    def test_missing_overview_counts_as_not_found(self, aws_client):
        conn = aws_client.ssm_conn()

        with Stubber(conn) as stubber:
            stubber.add_response(
                "describe_association",
                {"AssociationDescription": {"AssociationId": ASSOCIATION_ID, "Name": "AWS-RunShellScript"}},
            )
            assert status_association(conn, ASSOCIATION_ID)() == (None, "")

    def test_missing_association_counts_as_not_found(self, aws_client):
        conn = aws_client.ssm_conn()

        with Stubber(conn) as stubber:
            stubber.add_client_error("describe_association", service_error_code="AssociationDoesNotExist")
            assert status_association(conn, ASSOCIATION_ID)() == (None, "")

    def test_reports_overview_status(self, aws_client):
        conn = aws_client.ssm_conn()
        response = describe_response(Overview={"Status": "Pending", "DetailedStatus": "Creating"})

        with Stubber(conn) as stubber:
            stubber.add_response("describe_association", response)
            output, state = status_association(conn, ASSOCIATION_ID)()

        assert state == "Pending"
        assert output["AssociationId"] == ASSOCIATION_ID

    def test_cancelled_wait_makes_no_call(self, aws_client):
        cancel = threading.Event()
        cancel.set()

        with Stubber(aws_client.ssm_conn()):
            with pytest.raises(WaitCancelledError):
                wait_association_success(aws_client.ssm_conn(), ASSOCIATION_ID, 30, cancel)

    def test_cancel_during_wait(self, aws_client):
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response(
                "describe_association",
                describe_response(Overview={"Status": "Pending"}),
                {"AssociationId": ASSOCIATION_ID},
            )
            timer.start()
            start = time.monotonic()
            try:
                with pytest.raises(WaitCancelledError):
                    wait_association_success(
                        aws_client.ssm_conn(), ASSOCIATION_ID, 60, cancel, min_interval=10, max_interval=10,
                    )
            finally:
                timer.cancel()
            stubber.assert_no_pending_responses()

        assert time.monotonic() - start < 5

    def test_create_honours_cancel(self, aws_client):
        d = ResourceData(base_config(wait_for_success_timeout_seconds=30))
        cancel = threading.Event()
        cancel.set()

        with Stubber(aws_client.ssm_conn()) as stubber:
            stubber.add_response("create_association", {"AssociationDescription": {"AssociationId": ASSOCIATION_ID}}, CREATE_PARAMS)

            with pytest.raises(WaitCancelledError, match="waiting for SSM Association"):
                association.create(d, aws_client, cancel)
            stubber.assert_no_pending_responses()

        assert d.id == ASSOCIATION_ID
