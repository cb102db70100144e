import numpy as np
import pytest

from medseg import config

from synthetic import make_blobs_image, make_disk_mask


@pytest.fixture(autouse=True)
def default_preset():
    config.set_config("default")
    yield
    config.set_config("default")


@pytest.fixture
def blobs_image():
    return make_blobs_image()


@pytest.fixture
def disk_mask():
    return make_disk_mask()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
