from src.core.config import settings
from src.domain.models import VirtualMachineHealth
from src.infrastructure.azure.parsing import resource_group_from_id

from .base import SourceContext

HEALTHY_STATE = "Succeeded"


async def fetch_virtual_machines(ctx: SourceContext) -> VirtualMachineHealth:
    path = f"{ctx.subscription_path}/providers/Microsoft.Compute/virtualMachines"
    vms = await ctx.arm.list_all(path, settings.compute_api_version)
    if ctx.resource_group:
        vms = [
            vm
            for vm in vms
            if (resource_group_from_id(vm.get("id")) or "").lower()
            == ctx.resource_group.lower()
        ]
    healthy = sum(
        1
        for vm in vms
        if (vm.get("properties") or {}).get("provisioningState") == HEALTHY_STATE
    )
    return VirtualMachineHealth(
        total_vms=len(vms), healthy_vms=healthy, unhealthy_vms=len(vms) - healthy
    )


def fallback() -> VirtualMachineHealth:
    return VirtualMachineHealth(source="fallback")
