# src/cohxsec/physics/units.py
"""
Natural units: energies, momenta and masses in GeV, lengths in GeV^-1,
areas in GeV^-2. Divide a cross section by `cm2` to express it in cm^2.
"""
from __future__ import annotations
import numpy as np

GeV = 1.0
MeV = 1e-3 * GeV

HBARC_GEV_FM = 0.1973269804        # hbar*c [GeV fm]
fm = 1.0 / HBARC_GEV_FM            # 1 fm in GeV^-1
meter = 1e15 * fm
cm = 1e-2 * meter
cm2 = cm * cm

# Differential cross sections are integrated in units of 1e-38 cm^2
XSEC_WORKING_UNIT = 1e-38 * cm2

PI = np.pi
ASMALL_NUM = 1e-6   # keeps integration limits off trigonometric endpoints

# Masses [GeV]
M_ELECTRON = 0.00051099895
M_MUON = 0.1056583755
M_TAU = 1.77686
M_PION = 0.13957039
M_PI0 = 0.1349768
M_NUCLEON = 0.5 * (0.93827208816 + 0.93956542052)
AMU = 0.93149410242
