# -*- coding: utf-8 -*-
from .io import *
