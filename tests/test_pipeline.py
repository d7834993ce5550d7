import polars as pl
import pytest

from contact_trace_core import TraceConfig, ValidationError
from contact_tracing_pipeline import ContactTracingPipeline, PipelineConfig


@pytest.fixture
def movements_file(tmp_path):
    path = tmp_path / "transfers.csv"
    pl.DataFrame({
        'source': [2645, 3749, 1],
        'destination': [3749, 1, 2645],
        't': ['2005-10-01', '2005-10-02', '2005-09-01'],
        'id': ['a', 'b', 'c'],
        'n': [2, 5, 1],
        'category': ['Cattle', 'Cattle', 'Cattle'],
    }).write_csv(path)
    return path


def test_full_pipeline(movements_file, tmp_path):
    output_dir = tmp_path / "out"
    config = PipelineConfig(
        movements_file=str(movements_file),
        output_dir=str(output_dir),
        t_end='2005-10-31',
        days=90,
    )
    results = ContactTracingPipeline(config).run_full_pipeline()

    assert results["step1"]["movements"] == 3
    assert results["step1"]["locations"] == 3
    assert results["step2"]["roots"] == 3
    for name in ("network_summary.csv", "shortest_paths.csv", "contacts.csv"):
        assert (output_dir / name).exists()

    summary = pl.read_csv(output_dir / "network_summary.csv", infer_schema_length=0)
    assert sorted(summary['root'].to_list()) == ['1', '2645', '3749']
    row = summary.filter(pl.col('root') == '2645').row(0, named=True)
    assert row['outgoingContactChain'] == '2'
    assert row['ingoingContactChain'] == '1'


def test_selected_roots(movements_file, tmp_path):
    config = PipelineConfig(
        movements_file=str(movements_file),
        output_dir=str(tmp_path / "out"),
        t_end='2005-10-31',
        days=90,
        roots=['2645'],
    )
    pipeline = ContactTracingPipeline(config)
    results = pipeline.run_full_pipeline()
    assert results["step3"]["rows"] == 1
    assert [ct.root for ct in pipeline.traces] == ['2645']


def test_invalid_movements_abort(tmp_path):
    path = tmp_path / "broken.csv"
    pl.DataFrame({'source': ['A'], 't': ['2005-10-01']}).write_csv(path)
    config = PipelineConfig(
        movements_file=str(path),
        output_dir=str(tmp_path / "out"),
        t_end='2005-10-31',
        days=90,
    )
    with pytest.raises(ValidationError):
        ContactTracingPipeline(config).run_full_pipeline()


def test_zero_padded_location_ids(tmp_path):
    path = tmp_path / "padded.csv"
    path.write_text("source,destination,t\n0123,0456,2005-10-01\n0456,0789,2005-10-02\n")
    config = PipelineConfig(
        movements_file=str(path),
        output_dir=str(tmp_path / "out"),
        t_end='2005-10-31',
        days=90,
        roots=['0123'],
    )
    pipeline = ContactTracingPipeline(config)
    pipeline.run_full_pipeline()
    assert pipeline.log.locations() == ['0123', '0456', '0789']
    assert pipeline.traces[0].outgoing.outgoing_contact_chain() == 2


def test_caller_trace_config_is_not_modified(movements_file, tmp_path):
    trace_config = TraceConfig()
    config = PipelineConfig(
        movements_file=str(movements_file),
        output_dir=str(tmp_path / "out"),
        t_end='2005-10-31',
        days=90,
        num_processes=2,
        trace=trace_config,
    )
    assert (trace_config.num_processes, trace_config.progress) == (1, False)
    assert (config.trace.num_processes, config.trace.progress) == (2, True)
