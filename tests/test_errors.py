import importlib.util
import warnings

from payscale_backend.core.errors import DecryptionError, NotFoundError, OperationError, ValidationError


def test_http_statuses():
    assert ValidationError("x").http_status == 400
    assert NotFoundError("x").http_status == 404
    assert OperationError("x").http_status == 502
    assert DecryptionError("x").http_status == 422


def test_errors_module_loads_without_deprecated_status_names():
    spec = importlib.util.find_spec("payscale_backend.core.errors")
    module = importlib.util.module_from_spec(spec)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        spec.loader.exec_module(module)

    assert not [w for w in caught if "422" in str(w.message) or "deprecated" in str(w.message).lower()]
    assert module.DecryptionError.http_status == 422
