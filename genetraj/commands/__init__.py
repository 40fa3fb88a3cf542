# -*- coding: utf-8 -*-
from .util import *
from . import cell_embedding
from . import gene_distance
from . import gene_embedding
from . import gene_pairs
from . import gene_trajectory
from . import graph_distance
from . import run
