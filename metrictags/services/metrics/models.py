"""Pydantic V2 models for instrument and registry snapshots.

Each instrument kind serializes to a flat mapping of statistic name to number.
The statistic keys are stable and aliased to the names downstream consumers
expect (e.g. 'mean.rate', '99.9%').
"""

from typing import Dict, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

Number = Union[int, float]


class CounterSnapshotModel(BaseModel):
    """Counter reading - keys: count"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    count: int


class GaugeSnapshotModel(BaseModel):
    """Gauge reading - keys: value"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    value: Number


class MeterSnapshotModel(BaseModel):
    """Meter reading - keys: count, 1m.rate, 5m.rate, 15m.rate, mean.rate

    Rates are events per second.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    count: int
    rate1: float = Field(alias="1m.rate")
    rate5: float = Field(alias="5m.rate")
    rate15: float = Field(alias="15m.rate")
    rate_mean: float = Field(alias="mean.rate")


class HistogramSnapshotModel(BaseModel):
    """Histogram reading - keys: count, min, max, mean, stddev, median, 75%, 95%, 99%, 99.9%

    count is the total number of observed values; the other statistics are
    computed over the reservoir sample.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    count: int
    min: float
    max: float
    mean: float
    stddev: float
    median: float
    p75: float = Field(alias="75%")
    p95: float = Field(alias="95%")
    p99: float = Field(alias="99%")
    p999: float = Field(alias="99.9%")


class TimerSnapshotModel(HistogramSnapshotModel):
    """Timer reading - histogram keys (milliseconds) plus meter rate keys"""

    rate1: float = Field(alias="1m.rate")
    rate5: float = Field(alias="5m.rate")
    rate15: float = Field(alias="15m.rate")
    rate_mean: float = Field(alias="mean.rate")


class MetricsSnapshotModel(RootModel[Dict[str, Dict[str, Number]]]):
    """Root envelope: registered metric name -> {statistic -> number}"""
