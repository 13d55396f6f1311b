# =============================================================================
# Unit Tests: Feature Repository Feed
# =============================================================================

import pytest
from shapely.geometry import Point

from conftest import MemoryRepository, write_layer

from osmexport.domain.enums import ExportStatus
from osmexport.domain.models import SourceFeature
from osmexport.errors import ExportCanceledError, ExportMechanicsError, InvalidMappingError
from osmexport.pipeline.progress import LoggingProgressListener, ProgressListener
from osmexport.pipeline.source import LayerFeatureRepository, _parse_tags


def keep_all(feature):
    return feature


# =============================================================================
# Test: read_features
# =============================================================================

def test_read_features_applies_transform_and_skips_none(repository):
    """Test that None results are dropped from the feed."""
    result = list(repository.read_features("node", lambda f: f if f.id != 2 else None))

    assert [f.id for f in result] == [1, 3]


def test_read_features_applies_filter_before_transform(repository):
    """Test that filtered features never reach the transform."""
    seen = []

    def transform(feature):
        seen.append(feature.id)
        return feature

    list(repository.read_features("node", transform, lambda f: f.id > 1))

    assert seen == [2, 3]


def test_read_features_reports_progress(repository):
    """Test that progress counts every source feature and completes."""
    progress = ProgressListener()

    list(repository.read_features("way", lambda f: None, None, progress))

    assert progress.progress == 2
    assert progress.is_completed


def test_read_features_is_lazy(repository):
    """Test that nothing is read before the feed is consumed."""
    repository.read_features("node", keep_all)

    assert repository.reads == []


def test_read_features_rejects_unknown_path(repository):
    """Test that only node and way are valid paths."""
    with pytest.raises(ValueError, match="Invalid path"):
        list(repository.read_features("relation", keep_all))


def test_read_features_missing_collection():
    """Test that a missing collection reports NO_FEATURES_FOUND."""
    with pytest.raises(ExportMechanicsError) as exc_info:
        list(MemoryRepository({}).read_features("node", keep_all))

    assert exc_info.value.status_code == ExportStatus.NO_FEATURES_FOUND


def test_read_features_wraps_transform_errors(repository):
    """Test that transform exceptions become InvalidMappingError with the original message."""
    def broken(feature):
        raise KeyError("name")

    with pytest.raises(InvalidMappingError) as exc_info:
        list(repository.read_features("node", broken))

    assert exc_info.value.message == "'name'"
    assert isinstance(exc_info.value.__cause__, KeyError)


def test_logging_listener_logs_at_interval(caplog):
    """Test that the logging listener reports every interval features."""
    listener = LoggingProgressListener("schools", interval=2)
    repo = MemoryRepository({"node": [SourceFeature(id=i, geometry=Point(i, i)) for i in range(1, 6)]})

    with caplog.at_level("INFO"):
        list(repo.read_features("node", keep_all, None, listener))

    progress_lines = [r.message for r in caplog.records if "features processed" in r.message]
    assert progress_lines == ["schools: 2 features processed", "schools: 4 features processed"]
    assert listener.is_completed


# =============================================================================
# Test: Tag parsing
# =============================================================================

@pytest.mark.parametrize("value,expected", [
    ('{"amenity": "school", "levels": 2}', {"amenity": "school", "levels": "2"}),
    ({"shop": "bakery"}, {"shop": "bakery"}),
    ("", {}),
    (None, {}),
    (float("nan"), {}),
    ("not json", {}),
    ('["a", "b"]', {}),
])
def test_parse_tags(value, expected):
    """Test tag column parsing for JSON, dicts and missing values."""
    assert _parse_tags(value) == expected


def test_layer_repository_missing_file_has_no_collections(tmp_path):
    """Test that a missing repository file exposes no collections."""
    repo = LayerFeatureRepository(tmp_path / "missing.gpkg")

    with pytest.raises(ExportMechanicsError):
        list(repo.read_features("node", keep_all))


# =============================================================================
# Test: Layer repository on a GeoPackage file
# =============================================================================

def test_layer_repository_reads_in_batches(tmp_path, monkeypatch):
    """Test that layers are read batch by batch, in file order."""
    import osmexport.pipeline.source as source

    path = tmp_path / "repo.gpkg"
    write_layer(path, "node", [(i, f'{{"name": "n{i}"}}') for i in range(1, 6)])
    batches = []
    read_file = source.gpd.read_file

    def counting_read_file(*args, **kwargs):
        batches.append(kwargs["rows"])
        return read_file(*args, **kwargs)

    monkeypatch.setattr(source.gpd, "read_file", counting_read_file)
    repo = LayerFeatureRepository(path, batch_size=2)

    result = list(repo.read_features("node", keep_all))

    assert [f.id for f in result] == [1, 2, 3, 4, 5]
    assert result[0].tags == {"name": "n1"}
    assert batches == [slice(0, 2), slice(2, 4), slice(4, 6)]


def test_layer_repository_cancel_stops_before_next_batch(tmp_path, monkeypatch):
    """Test that a canceled listener prevents loading further batches."""
    import osmexport.pipeline.source as source

    path = tmp_path / "repo.gpkg"
    write_layer(path, "node", [(i, "{}") for i in range(1, 6)])
    batches = []
    read_file = source.gpd.read_file

    def counting_read_file(*args, **kwargs):
        batches.append(kwargs["rows"])
        return read_file(*args, **kwargs)

    monkeypatch.setattr(source.gpd, "read_file", counting_read_file)
    listener = ProgressListener()

    def cancel_after_second(feature):
        if feature.id == 2:
            listener.cancel()
        return feature

    repo = LayerFeatureRepository(path, batch_size=2)

    with pytest.raises(ExportCanceledError):
        list(repo.read_features("node", cancel_after_second, None, listener))

    assert batches == [slice(0, 2)]


def test_layer_without_id_column_is_source_read_failure(tmp_path):
    """Test that a layer missing the id column fails with a classified error."""
    path = tmp_path / "repo.gpkg"
    write_layer(path, "node", [(1, "{}")], with_id=False)

    with pytest.raises(ExportMechanicsError) as exc_info:
        list(LayerFeatureRepository(path).read_features("node", keep_all))

    assert exc_info.value.status_code == ExportStatus.SOURCE_READ_FAILURE
    assert "missing column 'id'" in exc_info.value.message


def test_corrupt_repository_file_is_source_read_failure(tmp_path):
    """Test that an unreadable repository file fails with a classified error."""
    path = tmp_path / "repo.gpkg"
    path.write_bytes(b"not a geopackage")

    with pytest.raises(ExportMechanicsError) as exc_info:
        list(LayerFeatureRepository(path).read_features("node", keep_all))

    assert exc_info.value.status_code == ExportStatus.SOURCE_READ_FAILURE


def test_layer_repository_rejects_bad_batch_size(tmp_path):
    """Test that the batch size must be positive."""
    with pytest.raises(ValueError, match="Batch size"):
        LayerFeatureRepository(tmp_path / "repo.gpkg", batch_size=0)
