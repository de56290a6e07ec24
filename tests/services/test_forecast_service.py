"""
Tests for ForecastService.
"""
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from fincast.core.domain.config import AlgorithmType
from fincast.core.domain.errors import BatchCancelledError, InsufficientDataError, ValidationError
from fincast.core.domain.result import ConfigOutcome, JobStatus
from fincast.core.domain.series import TimeSeries
from fincast.core.domain.settings import EngineSettings
from fincast.core.ports.result_writer import ResultWriter
from fincast.core.ports.series_loader import SeriesLoader
from fincast.core.services.batch import BatchOrchestrator
from fincast.core.services.forecast_service import ForecastService

START = date(2024, 3, 1)


@pytest.fixture
def mock_loader():
    loader = MagicMock(spec=SeriesLoader)
    loader.load_series = AsyncMock()
    return loader


@pytest.fixture
def mock_writer():
    writer = MagicMock(spec=ResultWriter)
    writer.save_forecast_results = AsyncMock()
    writer.save_accuracy_metrics = AsyncMock()
    writer.save_anomalies = AsyncMock()
    writer.save_job = AsyncMock()
    return writer


@pytest.fixture
def service(mock_loader, mock_writer):
    service = ForecastService(mock_loader, mock_writer, settings=EngineSettings(max_workers=2))
    yield service
    service.orchestrator.shutdown()


@pytest.mark.asyncio
async def test_generate_forecast_success(service, mock_loader, mock_writer, linear_series, make_config):
    """Test successful load-compute-store cycle."""
    mock_loader.load_series.return_value = linear_series
    config = make_config(algorithm=AlgorithmType.LINEAR_REGRESSION, category="groceries")

    points = await service.generate_forecast(7, config, START, 3)

    assert len(points) == 3
    assert points[0].target_date == START
    mock_loader.load_series.assert_awaited_once_with(
        7,
        START - timedelta(days=180),
        START - timedelta(days=1),
        category="groceries",
        transaction_type=None,
    )
    mock_writer.save_forecast_results.assert_awaited_once_with(7, config, points)


@pytest.mark.asyncio
async def test_generate_forecast_empty_history(service, mock_loader, mock_writer, make_config):
    """Test handling of empty source data."""
    mock_loader.load_series.return_value = TimeSeries.empty()

    with pytest.raises(InsufficientDataError):
        await service.generate_forecast(7, make_config(), START, 3)

    mock_writer.save_forecast_results.assert_not_awaited()


@pytest.mark.asyncio
async def test_generate_forecast_rejects_foreign_config(service, mock_loader, make_config):
    with pytest.raises(ValidationError):
        await service.generate_forecast(8, make_config(user_id=7), START, 3)
    mock_loader.load_series.assert_not_awaited()


@pytest.mark.asyncio
async def test_backtest_stores_points_and_metrics(service, mock_loader, mock_writer, linear_series, make_config):
    mock_loader.load_series.return_value = linear_series
    config = make_config(algorithm=AlgorithmType.LINEAR_REGRESSION)

    result = await service.backtest_and_store_accuracy(7, config, date(2024, 2, 20), 5, 30)

    assert result.metrics.mape == pytest.approx(0.0, abs=1e-9)
    mock_writer.save_forecast_results.assert_awaited_once_with(7, config, result.points)
    mock_writer.save_accuracy_metrics.assert_awaited_once_with(result.metrics)


@pytest.mark.asyncio
async def test_batch_loads_once_per_filter_and_saves_ok_members(
    service, mock_loader, mock_writer, linear_series, make_config
):
    mock_loader.load_series.return_value = linear_series
    configs = [
        make_config(1, AlgorithmType.SMA),
        make_config(2, AlgorithmType.EWMA),
        make_config(3, AlgorithmType.SMA, parameters={"window": 1000}),
        make_config(4, AlgorithmType.SMA, category="rent"),
    ]

    outcomes = await service.batch_generate_forecasts(7, configs, START, 5)

    assert [outcomes[i].ok for i in (1, 2, 3, 4)] == [True, True, False, True]
    assert mock_loader.load_series.await_count == 2
    saved_ids = [call.args[1].id for call in mock_writer.save_forecast_results.await_args_list]
    assert saved_ids == [1, 2, 4]

    job = mock_writer.save_job.await_args.args[0]
    assert job.status == JobStatus.COMPLETED
    assert (job.total_configs, job.succeeded, job.failed) == (4, 3, 1)


@pytest.mark.asyncio
async def test_cancelled_batch_writes_nothing(mock_loader, mock_writer, linear_series, make_config):
    mock_loader.load_series.return_value = linear_series
    orchestrator = MagicMock(spec=BatchOrchestrator)
    orchestrator.batch_generate = AsyncMock(side_effect=BatchCancelledError("timed out"))
    service = ForecastService(mock_loader, mock_writer, orchestrator=orchestrator)

    with pytest.raises(BatchCancelledError):
        await service.batch_generate_forecasts(7, [make_config(1)], START, 5)

    mock_writer.save_forecast_results.assert_not_awaited()
    job = mock_writer.save_job.await_args.args[0]
    assert job.status == JobStatus.FAILED
    assert "timed out" in job.error_message


@pytest.mark.asyncio
async def test_batch_passes_batch_timeout(mock_loader, mock_writer, linear_series, make_config):
    mock_loader.load_series.return_value = linear_series
    orchestrator = MagicMock(spec=BatchOrchestrator)
    orchestrator.batch_generate = AsyncMock(return_value={1: ConfigOutcome(config_id=1, points=[])})
    settings = EngineSettings(batch_timeout_seconds=12.5)
    service = ForecastService(mock_loader, mock_writer, settings=settings, orchestrator=orchestrator)

    await service.batch_generate_forecasts(7, [make_config(1)], START, 5)

    assert orchestrator.batch_generate.await_args.kwargs["timeout"] == 12.5


def test_detect_anomalies_returns_indices(service):
    values = [10.0] * 30
    values[12] = 90.0
    assert service.detect_anomalies(TimeSeries.from_values(values), 3.0) == [12]


@pytest.mark.asyncio
async def test_detect_and_store_anomalies(service, mock_loader, mock_writer, make_config):
    values = [10.0] * 30
    values[25] = 90.0
    mock_loader.load_series.return_value = TimeSeries.from_values(values, start=date(2024, 1, 1))
    config = make_config(5, AlgorithmType.ANOMALY_DETECTION, parameters={"threshold_sigma": 2.0})

    anomalies = await service.detect_and_store_anomalies(7, config, date(2024, 1, 1), date(2024, 1, 30))

    assert [a.index for a in anomalies] == [25]
    mock_writer.save_anomalies.assert_awaited_once_with(7, 5, anomalies)
