#
# Arbitrary-precision binary floating point arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .flags import *
from .errors import *
from .context import *
from .value import *
from .limits import *
from .dispatch import *
from .conversion import *
from .api import *
from .bigfloat import *

from . import flags, errors, context, value, limits, dispatch, conversion, api, bigfloat


__version__ = '1.0'

__all__ = tuple(dict.fromkeys(
    flags.__all__ + errors.__all__ + context.__all__ + value.__all__ + limits.__all__
    + dispatch.__all__ + conversion.__all__ + api.__all__ + bigfloat.__all__
))
