"""OpenPID schema compiler."""

from .errors import *
from .loader import load as load
from .loader import loads as loads
from .sizes import SchemaSizeInfo as SchemaSizeInfo
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import calculate_sizes as calculate_sizes
from .types import *
