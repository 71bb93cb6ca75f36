from .local_base import *
