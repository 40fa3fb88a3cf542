# -*- coding: utf-8 -*-
import genetraj.coarse_grain
import genetraj.diffusion_map
import genetraj.graph_distance
import genetraj.io
import genetraj.model
import genetraj.ot
import genetraj.trajectory
from .errors import *
from .matrix import *
from .model import DEFAULTS, GeneTrajectoryModel, initialize_model
