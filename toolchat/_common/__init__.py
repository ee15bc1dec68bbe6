from ._errors import *
from ._declaration import *
from ._call import *
from ._outcome import *
from ._conversation import *
from ._response import *
