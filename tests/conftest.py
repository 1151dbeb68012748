import pytest

from arbfloat import Context, HeapAllocator, set_from_native


@pytest.fixture
def allocator():
    return HeapAllocator()


@pytest.fixture
def context(allocator):
    with Context(allocator) as context:
        yield context


@pytest.fixture
def new(context):
    '''Return a factory of values of the context, optionally set to a Python number.'''
    def new(native=None):
        value = context.create()
        if native is not None:
            set_from_native(value, native)
        return value
    return new
