# File generated from its async equivalent, toolchat/aio/__init__.py
from .._common import *
from ._function import *
from ._registry import *
from ._transport import *
from ._loop import *
from ._openapi import *
from .time_plugin import TIME_PLUGIN
