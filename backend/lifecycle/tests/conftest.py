import pytest

from mentorhub.celery import app as celery_app


@pytest.fixture(autouse=True)
def eager_celery():
    """Run notification tasks inline; no broker in tests."""
    conf = celery_app.conf
    # Touching conf finalizes the lazy settings load, which would otherwise
    # replace anything set before it.
    previous = (conf.task_always_eager, conf.task_eager_propagates)
    conf.update(CELERY_TASK_ALWAYS_EAGER=True, CELERY_TASK_EAGER_PROPAGATES=False)
    yield
    conf.update(CELERY_TASK_ALWAYS_EAGER=previous[0], CELERY_TASK_EAGER_PROPAGATES=previous[1])
