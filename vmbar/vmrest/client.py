"""Async client for the VMware vmrest API."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..models.common import EmptyResponse, VMRestErrorResponse
from ..models.network import (
    CreateVmnetParameter,
    MacToIPParameter,
    MACToIPs,
    Network,
    Networks,
    NICDevice,
    NICDeviceParameter,
    NICDevices,
    NicIpStackAll,
    Portforwards,
    PortforwardParameter,
    SharedFolder,
    SharedFolderParameter,
    VMIPAddress,
)
from ..models.vm import (
    PowerAction,
    VMCloneParameter,
    VMInformation,
    VMParameter,
    VMPowerState,
    VMRegisterParameter,
    VMRegistrationInformation,
    VMRestrictionsInformation,
    VMSummary,
)
from .errors import (
    AuthenticationFailed,
    Conflict,
    DecodingError,
    HttpError,
    InvalidRequest,
    NetworkError,
    NotFound,
    PermissionDenied,
    VMRestError,
)

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/vnd.vmware.vmw.rest-v1+json"


def _segment(value: Any) -> str:
    return quote(str(value), safe=":")


def is_empty_body(content: Optional[bytes]) -> bool:
    """True for a missing, blank or literal ``null`` body."""
    if not content:
        return True
    try:
        text = content.decode("utf-8").strip()
    except UnicodeDecodeError:
        return False
    return text == "" or text == "null"


def parse_error_message(content: Optional[bytes]) -> Optional[str]:
    """Best-effort server message from an error body. Never raises."""
    if not content:
        return None
    try:
        return VMRestErrorResponse.model_validate_json(content).message
    except ValidationError:
        pass
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return None


class VMRestClient:
    """Thin typed wrapper over the vmrest endpoints.

    Every method issues exactly one HTTP request and either returns the
    decoded model or raises a :class:`~vmbar.vmrest.errors.VMRestError`.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        try:
            self._client = httpx.AsyncClient(
                base_url=base_url,
                auth=httpx.BasicAuth(username, password),
                headers={"Content-Type": CONTENT_TYPE, "Accept": CONTENT_TYPE},
                timeout=timeout,
                transport=transport,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidRequest(f"{base_url}: {e}") from e

    async def __aenter__(self) -> "VMRestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Generic request handler --- #

    async def _request(
        self,
        endpoint: str,
        result_type: Any,
        method: str = "GET",
        body: Optional[bytes] = None,
    ):
        try:
            request = self._client.build_request(method, endpoint, content=body)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidRequest(f"{method} {endpoint}: {e}") from e

        logger.debug(f"{method} {request.url}")
        try:
            response = await self._client.send(request)
        except httpx.UnsupportedProtocol as e:
            raise InvalidRequest(str(e)) from e
        except httpx.TransportError as e:
            raise NetworkError(e) from e
        except httpx.RequestError as e:
            # e.g. a body that fails its Content-Encoding
            raise NetworkError(e) from e

        status = response.status_code
        content = response.content

        if status in (200, 201, 204):
            no_content = result_type is EmptyResponse
            if is_empty_body(content):
                if no_content:
                    return EmptyResponse()
                raise DecodingError(ValueError(f"empty body for HTTP {status}"))
            if no_content:
                return EmptyResponse()
            try:
                return TypeAdapter(result_type).validate_json(content)
            except ValidationError as e:
                raise DecodingError(e) from e

        if status == 401:
            raise AuthenticationFailed()
        if status == 403:
            raise PermissionDenied()
        if status == 404:
            raise NotFound()
        if status == 409:
            raise Conflict()
        if status == 406:
            raise HttpError(406, parse_error_message(content) or "Content type not supported")
        raise HttpError(status, parse_error_message(content))

    @staticmethod
    def _encode(parameters: BaseModel) -> bytes:
        try:
            return parameters.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        except (ValueError, TypeError) as e:
            raise InvalidRequest(f"cannot encode {type(parameters).__name__}: {e}") from e

    # --- VM management --- #

    async def list_vms(self) -> list[VMSummary]:
        return await self._request("/api/vms", list[VMSummary])

    async def get_vm(self, vm_id: str) -> VMInformation:
        return await self._request(f"/api/vms/{_segment(vm_id)}", VMInformation)

    async def update_vm(self, vm_id: str, parameters: VMParameter) -> VMInformation:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}", VMInformation, "PUT", self._encode(parameters)
        )

    async def delete_vm(self, vm_id: str) -> EmptyResponse:
        return await self._request(f"/api/vms/{_segment(vm_id)}", EmptyResponse, "DELETE")

    async def clone_vm(self, parameters: VMCloneParameter) -> VMInformation:
        return await self._request("/api/vms", VMInformation, "POST", self._encode(parameters))

    async def register_vm(self, name: str, path: str) -> VMRegistrationInformation:
        body = self._encode(VMRegisterParameter(name=name, path=path))
        return await self._request("/api/vms/registration", VMRegistrationInformation, "POST", body)

    async def get_vm_restrictions(self, vm_id: str) -> VMRestrictionsInformation:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/restrictions", VMRestrictionsInformation
        )

    # --- VM parameters --- #

    async def get_vm_param(self, vm_id: str, name: str) -> VMParameter:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/params/{_segment(name)}", VMParameter
        )

    async def update_vm_params(self, vm_id: str, parameters: VMParameter) -> EmptyResponse:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/params", EmptyResponse, "PUT", self._encode(parameters)
        )

    # --- Power management --- #

    async def get_power_state(self, vm_id: str) -> VMPowerState:
        return await self._request(f"/api/vms/{_segment(vm_id)}/power", VMPowerState)

    async def perform_power_action(self, vm_id: str, action: PowerAction) -> VMPowerState:
        # vmrest takes the action as a bare string, not JSON
        body = PowerAction(action).value.encode("utf-8")
        return await self._request(f"/api/vms/{_segment(vm_id)}/power", VMPowerState, "PUT", body)

    # --- Network adapters --- #

    async def get_nic_devices(self, vm_id: str) -> NICDevices:
        return await self._request(f"/api/vms/{_segment(vm_id)}/nic", NICDevices)

    async def create_nic_device(self, vm_id: str, parameters: NICDeviceParameter) -> NICDevice:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/nic", NICDevice, "POST", self._encode(parameters)
        )

    async def update_nic_device(
        self, vm_id: str, index: str, parameters: NICDeviceParameter
    ) -> NICDevice:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/nic/{_segment(index)}",
            NICDevice,
            "PUT",
            self._encode(parameters),
        )

    async def delete_nic_device(self, vm_id: str, index: str) -> EmptyResponse:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/nic/{_segment(index)}", EmptyResponse, "DELETE"
        )

    async def get_ip_address(self, vm_id: str) -> VMIPAddress:
        return await self._request(f"/api/vms/{_segment(vm_id)}/ip", VMIPAddress)

    async def get_nic_ip_stack(self, vm_id: str) -> NicIpStackAll:
        return await self._request(f"/api/vms/{_segment(vm_id)}/nicips", NicIpStackAll)

    # --- Shared folders --- #

    async def get_shared_folders(self, vm_id: str) -> list[SharedFolder]:
        return await self._request(f"/api/vms/{_segment(vm_id)}/sharedfolders", list[SharedFolder])

    async def create_shared_folder(self, vm_id: str, folder: SharedFolder) -> list[SharedFolder]:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/sharedfolders",
            list[SharedFolder],
            "POST",
            self._encode(folder),
        )

    async def update_shared_folder(
        self, vm_id: str, folder_id: str, parameters: SharedFolderParameter
    ) -> list[SharedFolder]:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/sharedfolders/{_segment(folder_id)}",
            list[SharedFolder],
            "PUT",
            self._encode(parameters),
        )

    async def delete_shared_folder(self, vm_id: str, folder_id: str) -> EmptyResponse:
        return await self._request(
            f"/api/vms/{_segment(vm_id)}/sharedfolders/{_segment(folder_id)}",
            EmptyResponse,
            "DELETE",
        )

    # --- Host networks --- #

    async def get_networks(self) -> Networks:
        return await self._request("/api/vmnet", Networks)

    async def create_network(self, parameters: CreateVmnetParameter) -> Network:
        return await self._request("/api/vmnets", Network, "POST", self._encode(parameters))

    async def get_port_forwards(self, vmnet: str) -> Portforwards:
        return await self._request(f"/api/vmnet/{_segment(vmnet)}/portforward", Portforwards)

    async def update_port_forward(
        self, vmnet: str, protocol: str, port: int, parameters: PortforwardParameter
    ) -> EmptyResponse:
        return await self._request(
            f"/api/vmnet/{_segment(vmnet)}/portforward/{_segment(protocol)}/{port}",
            EmptyResponse,
            "PUT",
            self._encode(parameters),
        )

    async def delete_port_forward(self, vmnet: str, protocol: str, port: int) -> EmptyResponse:
        return await self._request(
            f"/api/vmnet/{_segment(vmnet)}/portforward/{_segment(protocol)}/{port}",
            EmptyResponse,
            "DELETE",
        )

    async def get_mac_to_ips(self, vmnet: str) -> MACToIPs:
        return await self._request(f"/api/vmnet/{_segment(vmnet)}/mactoip", MACToIPs)

    async def update_mac_to_ip(self, vmnet: str, mac: str, ip: str) -> EmptyResponse:
        return await self._request(
            f"/api/vmnet/{_segment(vmnet)}/mactoip/{_segment(mac)}",
            EmptyResponse,
            "PUT",
            self._encode(MacToIPParameter(ip=ip)),
        )

    # --- Connection test --- #

    async def test_connection(self) -> bool:
        try:
            await self.list_vms()
        except VMRestError as e:
            logger.info(f"Connection test against {self.base_url} failed: {e}")
            return False
        return True
