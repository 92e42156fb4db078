import pytest

from yqlmodel.params import Parameters, Range
from yqlmodel.stats import Stats


def test_defaults_to_json():
    expected = (
        '{"graph_size":{"min":2,"max":30},'
        '"source_volume":{"min":100,"max":500},'
        '"filter_volume":{"min":0.6,"max":1},'
        '"servers_count":10,'
        '"servers_stat":{"cpu":3400,"memory":100000,"network":10000,"disk":0},'
        '"max_count_local":1,'
        '"max_distributed_traffic":50}'
    )
    assert Parameters().to_json() == expected


def test_default_values():
    params = Parameters()
    assert params.graph_size == Range(2, 30)
    assert params.source_volume == Range(100, 500)
    assert params.servers_count == 10
    assert params.max_count_local == 1
    assert params.max_distributed_traffic == 50
    assert params.servers_stat == Stats(cpu=3400, memory=100000, network=10000)


def test_range_to_json():
    assert Range(2, 30).to_json() == '{"min":2,"max":30}'


def test_range_parse():
    assert Range.parse("3,7", int) == Range(3, 7)
    assert Range.parse("0.5,0.9", float) == Range(0.5, 0.9)


def test_range_parse_without_comma_uses_whole_text():
    assert Range.parse("5", int) == Range(5, 5)


def test_range_parse_invalid():
    with pytest.raises(ValueError):
        Range.parse("a,b", int)


def test_update_ranges():
    params = Parameters()
    params.update({"graph_size": "4,8", "filter_volume": "0.2,0.4", "source_volume": "10,20"})
    assert params.graph_size == Range(4, 8)
    assert params.filter_volume == Range(0.2, 0.4)
    assert params.source_volume == Range(10, 20)


def test_update_scalars_and_stats():
    params = Parameters()
    params.update({"servers_count": "3", "max_count_local": "5", "servers_stat": "1,2,3,4"})
    assert params.servers_count == 3
    assert params.max_count_local == 5
    assert params.servers_stat == Stats(1.0, 2.0, 3.0, 4.0)


def test_update_reflected_in_json():
    params = Parameters()
    params.update({"servers_count": "7"})
    assert '"servers_count":7' in params.to_json()


def test_update_unknown_param_raises():
    with pytest.raises(ValueError, match="unknown param: bogus"):
        Parameters().update({"bogus": "1"})


def test_max_distributed_traffic_is_not_updatable():
    params = Parameters()
    with pytest.raises(ValueError, match="unknown param"):
        params.update({"max_distributed_traffic": "10"})
    assert params.max_distributed_traffic == 50


def test_update_bad_value_raises():
    with pytest.raises(ValueError):
        Parameters().update({"servers_count": "many"})