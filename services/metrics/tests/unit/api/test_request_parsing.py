import pytest
from src.api.requests import (
    RESOURCE_GROUP_RE,
    validate_resource_group,
    validate_subscription,
)
from src.core.errors import RequestMalformed


def test_validate_subscription(subscription_id):
    assert validate_subscription(subscription_id) == subscription_id
    with pytest.raises(RequestMalformed, match="required"):
        validate_subscription(None)
    with pytest.raises(RequestMalformed):
        validate_subscription("1234")


@pytest.mark.parametrize("name", ["rg-web", "RG_data.01", "my(group)", "a" * 90])
def test_valid_resource_groups(name):
    assert validate_resource_group(name) == name


@pytest.mark.parametrize("name", ["rg'", "rg web", "a" * 91, "ends.", "rg|x"])
def test_invalid_resource_groups(name):
    with pytest.raises(RequestMalformed):
        validate_resource_group(name)


def test_missing_resource_group_is_allowed():
    assert validate_resource_group(None) is None
    assert RESOURCE_GROUP_RE.match("") is None
