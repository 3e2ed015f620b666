from src.infrastructure.azure.parsing import (
    latest_value,
    mean_value,
    metric_points,
    resource_group_from_id,
)


def test_resource_group_from_id():
    rid = "/subscriptions/s/resourceGroups/rg-web/providers/Microsoft.Web/sites/app"
    assert resource_group_from_id(rid) == "rg-web"
    assert resource_group_from_id("/subscriptions/s/resourcegroups/RG") == "RG"
    assert resource_group_from_id("/subscriptions/s") is None
    assert resource_group_from_id(None) is None


def test_metric_points_picks_named_metric():
    metrics = [
        {"name": {"value": "a"}, "timeseries": [{"data": [{"average": 1}]}]},
        {"name": {"value": "b"}, "timeseries": []},
    ]
    assert metric_points(metrics, "a") == [{"average": 1}]
    assert metric_points(metrics, "b") == []
    assert metric_points(metrics, "c") == []


def test_latest_and_mean_skip_missing_values():
    points = [{"average": 2.0}, {"average": 4.0}, {"average": None}, {}]
    assert latest_value(points, "average") == 4.0
    assert mean_value(points, "average") == 3.0
    assert latest_value([], "average") is None
    assert mean_value([{}], "average") is None
