"""
This module runs both phases of a step on a torch device.

TorchDevice is the residency provider passed to BodyStore.acquire: stage copies the
interleaved host records into contiguous (N, 3) position and velocity tensors on the
device for the whole run, and flush waits for outstanding device work and writes the
tensors back into the host buffer, so every host-side read after the scope sees the
final state. TorchResidency implements launch_forces and launch_drift; kernels are
queued on the device and the returned PhaseHandle's finalize step is the device
synchronize, which the worker pool's barrier runs. The force phase processes targets in
row blocks of tile_size against all sources, so each target's velocity is written once by
one block. The reciprocal square root is torch.rsqrt or the float32 bit-level estimate on
an int32 view, mirroring the numpy methods. Device runtime errors surface as
ExecutionError for the phase that raised them.
"""

from __future__ import annotations
from typing import Callable, Dict
import numpy as np
import torch

from .constants import FORCE_PHASE, INTEGRATION_PHASE
from .errors import AllocationError, ExecutionError, LaunchError
from .worker_pool import PhaseHandle




def torch_rsqrt_exact(x: torch.Tensor) -> torch.Tensor:
	return torch.rsqrt(x)


def torch_rsqrt_fast(x: torch.Tensor, newton_steps: int = 1) -> torch.Tensor:
	x = x.to(torch.float32).contiguous()
	i = x.view(torch.int32)
	y = (0x5F3759DF - (i >> 1)).view(torch.float32)
	half_x = 0.5 * x
	for _ in range(int(newton_steps)):
		y = y * (1.5 - half_x * y * y)
	return y


_TORCH_RSQRT: Dict[str, Callable[[torch.Tensor], torch.Tensor]] = {
	"exact": torch_rsqrt_exact,
	"rsqrt_exact": torch_rsqrt_exact,
	"fast": torch_rsqrt_fast,
	"rsqrt_fast": torch_rsqrt_fast,
}


class TorchResidency:
	def __init__(self, device: torch.device, pos: torch.Tensor, vel: torch.Tensor) -> None:
		self.device = device
		self.pos = pos
		self.vel = vel

	def synchronize(self) -> None:
		if self.device.type == "cuda":
			torch.cuda.synchronize(self.device)

	def positions_finite(self) -> bool:
		return bool(torch.isfinite(self.pos).all().item())

	def velocities_finite(self) -> bool:
		return bool(torch.isfinite(self.vel).all().item())

	def launch_forces(self, accumulator, dt: float) -> PhaseHandle:
		rsqrt = _TORCH_RSQRT.get(accumulator.rsqrt_name)
		if rsqrt is None:
			raise LaunchError(
				FORCE_PHASE, f"rsqrt method {accumulator.rsqrt_name!r} has no torch kernel"
			)
		n = int(self.pos.shape[0])
		tile = max(1, int(accumulator.tile_size))
		eps2 = float(accumulator.softening)
		h = float(dt)

		try:
			for start in range(0, n, tile):
				stop = min(start + tile, n)
				d = self.pos.unsqueeze(0) - self.pos[start:stop].unsqueeze(1)
				r2 = torch.einsum("ijk,ijk->ij", d, d) + eps2
				inv_r = rsqrt(r2).to(self.pos.dtype)
				inv_r3 = inv_r * inv_r * inv_r
				self.vel[start:stop] += h * torch.einsum("ij,ijk->ik", inv_r3, d)
		except RuntimeError as exc:
			raise ExecutionError(FORCE_PHASE, f"device error: {exc}", exc) from exc
		return PhaseHandle(FORCE_PHASE, finalize=self.synchronize, pairs=n * n)

	def launch_drift(self, integrator, dt: float) -> PhaseHandle:
		try:
			self.pos += float(dt) * self.vel
		except RuntimeError as exc:
			raise ExecutionError(INTEGRATION_PHASE, f"device error: {exc}", exc) from exc
		return PhaseHandle(INTEGRATION_PHASE, finalize=self.synchronize)


class TorchDevice:
	def __init__(self, device: str = "cpu") -> None:
		self.device = torch.device(device)

	def stage(self, store) -> TorchResidency:
		try:
			pos = torch.from_numpy(np.ascontiguousarray(store.positions)).to(self.device)
			vel = torch.from_numpy(np.ascontiguousarray(store.velocities)).to(self.device)
		except (RuntimeError, MemoryError) as exc:
			raise AllocationError(f"cannot place Body Store on {self.device}: {exc}") from exc
		return TorchResidency(self.device, pos, vel)

	def flush(self, store, resident: TorchResidency) -> None:
		resident.synchronize()
		store.positions[...] = resident.pos.detach().cpu().numpy()
		store.velocities[...] = resident.vel.detach().cpu().numpy()

	def __repr__(self) -> str:
		return f"TorchDevice({self.device})"
