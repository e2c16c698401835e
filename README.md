# mojit

Building blocks for running an aarch64 Linux guest inside a gated host
process. Everything here is pure computation: no memory is mapped, no
sockets are opened and no system calls are made on behalf of the guest.

## Modules

- **`mojit.guestmem`**: the abstract interfaces `MemReader.read_bytes(ptr, n)`,
  `MemWriter.write_bytes(ptr, data)` and `PathReader.read_path(ptr, max_len)`
  for access to guest memory, plus the defaults `NoopMemReader`,
  `NoopMemWriter` and `NoopPathReader`, which raise `GuestFaultError` (an
  `OSError` with errno `EFAULT`) on every call so that a missing bridge fails
  loudly.
- **`mojit.policy`**: frozen dataclasses `Policy`, `BindMount` and
  `NetPolicy`. `NetPolicy` parses the strings it is given for `deny_cidrs`
  and `dns_servers` into `ipaddress` objects.
- **`mojit.netgate`**: `NetGate` enforces a `NetPolicy` whose `mode` is
  `"none"`, `"loopback-only"` or `"internet"` (the empty string acts as
  `"none"` for the address checks).
  - `check_connect`, `check_accept` and `check_bind` take an `AddrPort`
    (build one with `parse_addr_port("1.2.3.4:80")` or
    `parse_addr_port("[::1]:80")`) and raise `BlockedByPolicyError`
    (a `PermissionError` with errno `EACCES`) when the address is refused.
    An unknown mode raises `ValueError`.
  - In internet mode, connect destinations inside `builtin_deny()`
    (loopback, link-local and RFC 1918 ranges) or inside
    `NetPolicy.deny_cidrs` are blocked.
  - Loopback-only guests may connect to and accept from loopback only, and
    may bind loopback or wildcard addresses.
  - `allow_socket(domain)` refuses `AF_INET`/`AF_INET6` under mode `"none"`,
    always allows `AF_UNIX`, and raises `OSError` with `EAFNOSUPPORT` for any
    other family.
- **`mojit.statpack`**: `pack_stat` serialises an `os.stat_result`-like
  object into the 128-byte aarch64 `struct stat` (`STAT_SIZE`), and
  `pack_statfs` serialises a `StatfsInfo` into the 120-byte
  `struct statfs64` (`STATFS_SIZE`). The `AT_SYMLINK_NOFOLLOW`,
  `AT_NO_AUTOMOUNT` and `AT_EMPTY_PATH` flag values are also defined here.
- **`mojit.elfplan`**: `plan_image(data, load_bias)` parses an aarch64 ELF64
  binary (bytes or a binary file object) and returns an `Image` with its
  `Segment`s (with `Prot` flags), entry point, load bias, interpreter path
  and program-header address, count and entry size. The load bias is applied
  to `ET_DYN` images only. Anything else raises `ElfPlanError`.
- **`mojit.auxv`**: `standard_auxv(image, interp_base)` returns the
  `AT_PHDR`, `AT_PHENT`, `AT_PHNUM`, `AT_PAGESZ`, `AT_BASE`, `AT_FLAGS` and
  `AT_ENTRY` entries for an `Image`.
- **`mojit.stack`**: `build_start_stack(BuildInput(...))` packs argc, argv,
  envp, the auxiliary vector (`AuxEntry`, tags in `AuxType`) and the
  `AT_RANDOM`, `AT_PLATFORM` and `AT_EXECFN` data into the byte image found
  at the initial stack pointer. It returns `(image, sp)` and raises
  `ValueError` for an empty argv, a stack base that is not 16-byte aligned,
  or random bytes that are not exactly 16 long.

## Example

```python
from mojit.netgate import NetGate, parse_addr_port, BlockedByPolicyError
from mojit.policy import NetPolicy

gate = NetGate(NetPolicy(mode="internet"))
gate.check_connect(parse_addr_port("1.1.1.1:443"))      # allowed
try:
    gate.check_connect(parse_addr_port("10.0.0.1:80"))
except BlockedByPolicyError:
    print("private range blocked")
```

```python
from pathlib import Path
from mojit.elfplan import plan_image
from mojit.auxv import standard_auxv
from mojit.stack import BuildInput, build_start_stack

image = plan_image(Path("guest.elf").read_bytes(), 0x5555_0000_0000)
aux = standard_auxv(image, 0)
stack, sp = build_start_stack(
    BuildInput(
        stack_base=0x7FFF_0000_0000,
        argv=["/bin/sh"],
        envp=["PATH=/usr/bin"],
        aux=aux,
        platform="aarch64",
    )
)
```

## What this package does not do

It has no command-line program, no syscall dispatcher and no file
descriptor table. It does not implement the overlay filesystem described by
`Policy` (copy-up, whiteouts, directory merging), does not open or forward
real sockets, and does not map or run the planned ELF image. The
`guestmem` interfaces have no implementation that reaches real guest memory;
only the faulting defaults are provided.

## Tests

The test suite uses pytest and is installed with the `test` extra.