# src/cohxsec/physics/models.py
from __future__ import annotations
from typing import Dict, Optional, Protocol

from .interaction import InitialState, Interaction, KinePhaseSpace, ProcessInfo


class XSecModel(Protocol):
    """Differential cross-section model consumed by the integrators."""

    def valid_process(self, interaction: Interaction) -> bool:
        """False if the model cannot describe this interaction at all."""

    def xsec(self, interaction: Interaction, kps: KinePhaseSpace) -> float:
        """Differential cross section [GeV^-2 per unit of the kps variables]."""


class ModelCatalog:
    """
    Explicit process -> cross-section model map.

    A model registered for (process, initial state) takes precedence over
    one registered for the process alone.
    """

    def __init__(self, name: str = "unnamed mc model", diagnostics_level: int = 1):
        self.name = name
        self.diagnostics_level = diagnostics_level
        self._models: Dict[str, XSecModel] = {}

    @staticmethod
    def build_key(proc: ProcessInfo, init: InitialState | None = None) -> str:
        key = f"PROC:{proc.as_string()}"
        if init is not None:
            key += f";INIT:{init.as_string()}"
        return key

    def use_xsec_alg(self, proc: ProcessInfo, model: XSecModel, init: InitialState | None = None) -> None:
        self._models[self.build_key(proc, init)] = model

    def xsec_alg(self, interaction: Interaction) -> Optional[XSecModel]:
        for key in (
            self.build_key(interaction.process, interaction.init_state),
            self.build_key(interaction.process),
        ):
            model = self._models.get(key)
            if model is not None:
                return model
        if self.diagnostics_level >= 1:
            print(f"[{self.name}] No cross section model for {interaction.as_string()}")
        return None

    def __len__(self) -> int:
        return len(self._models)
