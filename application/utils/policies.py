"""Endpoint upload policies assembled from settings."""
from __future__ import annotations

from functools import lru_cache

from core.config import UploadSettings, settings
from domain.upload.policy import EndpointPolicy, TypePolicy

GENERAL = "general"
MULTIPLE = "multiple"
FIELDS = "fields"
IMAGE = "image"


def build_endpoint_policies(upload: UploadSettings) -> dict[str, EndpointPolicy]:
    general_types = TypePolicy.general()
    return {
        GENERAL: EndpointPolicy(
            name=GENERAL,
            type_policy=general_types,
            max_file_size=upload.general.max_file_size,
            max_file_count=1,
            fields={"file": 1},
        ),
        MULTIPLE: EndpointPolicy(
            name=MULTIPLE,
            type_policy=general_types,
            max_file_size=upload.general.max_file_size,
            max_file_count=upload.general.max_file_count,
            fields={"files": upload.general.max_file_count},
        ),
        FIELDS: EndpointPolicy(
            name=FIELDS,
            type_policy=general_types,
            max_file_size=upload.fields.max_file_size,
            max_file_count=upload.fields.max_file_count,
            fields=dict(upload.fields.fields),
        ),
        IMAGE: EndpointPolicy(
            name=IMAGE,
            type_policy=TypePolicy.images_only(),
            max_file_size=upload.image.max_file_size,
            max_file_count=upload.image.max_file_count,
            fields={"image": upload.image.max_file_count},
        ),
    }


@lru_cache
def get_endpoint_policies() -> dict[str, EndpointPolicy]:
    return build_endpoint_policies(settings.upload)
