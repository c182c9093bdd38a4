from __future__ import annotations

import boto3
import pytest
from botocore.stub import Stubber

from postboard.infra.storage import ObjectStoreError, S3ObjectStore


def _client():
	return boto3.client(
		"s3",
		region_name="us-east-1",
		aws_access_key_id="test",
		aws_secret_access_key="test",
	)


@pytest.mark.asyncio
async def test_upload_puts_object_with_content_type():
	client = _client()
	store = S3ObjectStore(bucket="attachments", client=client, region="us-east-1")
	with Stubber(client) as stub:
		stub.add_response(
			"put_object",
			{"ETag": '"abc"'},
			{"Bucket": "attachments", "Key": "posts/1-a.png", "Body": b"data", "ContentType": "image/png"},
		)
		await store.upload("posts/1-a.png", b"data", content_type="image/png")
		stub.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_upload_client_error_becomes_object_store_error():
	client = _client()
	store = S3ObjectStore(bucket="attachments", client=client, region="us-east-1")
	with Stubber(client) as stub:
		stub.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
		with pytest.raises(ObjectStoreError) as info:
			await store.upload("posts/1-a.png", b"data", content_type="image/png")

	assert info.value.key == "posts/1-a.png"
	assert "AccessDenied" in str(info.value)


def test_public_url_variants():
	client = _client()
	assert (
		S3ObjectStore(bucket="b", client=client, region="eu-west-1").public_url("posts/x.png")
		== "https://b.s3.eu-west-1.amazonaws.com/posts/x.png"
	)
	assert (
		S3ObjectStore(bucket="b", client=client, endpoint_url="http://minio:9000/").public_url("posts/x.png")
		== "http://minio:9000/b/posts/x.png"
	)
	assert (
		S3ObjectStore(bucket="b", client=client, public_base_url="https://cdn.example/").public_url("posts/x.png")
		== "https://cdn.example/posts/x.png"
	)
