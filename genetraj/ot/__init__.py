# -*- coding: utf-8 -*-
from .gene_distance import *
from .optimal_transport import *
from .sparsify import *
