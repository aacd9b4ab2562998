# rabbitsim

Behavioural models of the memory-mapped peripherals of a simulated
multiprocessor platform: on-chip memory, hardware semaphores, mailboxes,
a timer, a traffic generator, a framebuffer, a streaming display,
terminals, a block device, and the register window through which
software sets processor speeds. Alongside them are the bookkeeping
pieces a processor model needs: frequency/voltage operating points,
time-at-level accounting and a pool of bus transaction ids.

## Installation

From a checkout of the package:

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
pytest
```

## The bus protocol

Every device derives from `rabbitsim.slave.SlaveDevice` and is driven
through `SlaveDevice.handle(request)`. A `Request` carries a byte offset
(`address`), an 8-bit byte-enable mask (`be`) over a 64-bit data beat, a
`Command` (`READ` or `WRITE`) and, for writes, the 8 bytes of `wdata`.
`handle` returns a `Response` whose `rdata` holds the 8-byte beat read
and whose `rerror` is set when the device rejected the access with
`DeviceError`. A request that arrives while the device is still serving
another one is dropped and `handle` returns `None`.

Subclasses implement `rcv_rqst(ofs, be, data, write)`, returning the
read beat or `None` for a write. `decode_byte_enable(be)` turns a mask
into `(lane_index, width)` for the 1, 2, 4 and 8-byte lanes of a beat.

Each device has a `SimClock` (`clock`) counting picoseconds;
`SimClock.advance(ps)` moves it forward.

## Example

```python
from rabbitsim.slave import Command, Request
from rabbitsim.sram import SramDevice

ram = SramDevice("ram", 0x1000)

# 32-bit write to the low half of the beat at offset 0x10
ram.handle(Request(0x10, 0x0F, Command.WRITE, bytes.fromhex("efbeadde00000000")))

# read it back
rsp = ram.handle(Request(0x10, 0x0F, Command.READ))
print(rsp.rdata[:4].hex(), rsp.rerror)   # efbeadde False
```

## Modules

| Module | Contents |
| --- | --- |
| `rabbitsim.slave` | `SlaveDevice`, `Request`, `Response`, `Command`, `DeviceError`, `SimClock`, `decode_byte_enable` |
| `rabbitsim.sram` | `SramDevice`: byte-addressable memory with 1/2/4/8-byte accesses; each access advances its clock by 1 ns |
| `rabbitsim.sem` | `SemDevice`: word reads take a free semaphore; `SemaphoreError` on a bad access or double locking |
| `rabbitsim.mailbox` | `MailboxDevice` with `MailboxRegister` and `MailboxStatus`: per-mailbox command/data/reserved/reset registers, one `irq` flag per mailbox, and ten global registers from offset 0x1000 |
| `rabbitsim.timer` | `TimerDevice` with `TimerRegister` and `TimerMode`: a periodic timer; `run_until(ps)` advances time and returns how many periods ended |
| `rabbitsim.tg` | `TrafficGeneratorDevice`: returns a file's bytes four at a time, starting over at the end; a context manager with `close()` |
| `rabbitsim.framebuffer` | `FramebufferDevice`, `FbMode`, `yuv2rgb`: double-buffered frames handed to a viewer callable on `display()` |
| `rabbitsim.ramdac` | `RamdacDevice`: learns width, height and components from its first three writes, then collects pixel words into frames for a viewer callable |
| `rabbitsim.tty` | `TtyDevice` with `TtyRegister`: each byte written goes to one output stream per terminal |
| `rabbitsim.blockdevice` | `BlockDevice`, `BlockDeviceSlave`, `ControlRegisters`, `BlockRegister`, `BlockOp`, `BlockStatus`: block reads and writes between a host file and a bus object |
| `rabbitsim.cpu_fvs` | `get_cpu_nb_fv_levels`, `get_cpu_boot_fv_level`, `get_cpu_fv_percents`, `get_cpu_fvs` |
| `rabbitsim.cpu_logs` | `CpuLogs`: time at each level, cycle counts as two 32-bit halves, average speed via `update_fv_grf` and `start_measure`/`stop_measure` |
| `rabbitsim.requests_pool` | `RequestPool`, `WrapperRequest`, `PoolError` |
| `rabbitsim.wrapper_slave` | `QemuWrapperSlaveDevice`, the `ReadRegister` and `WriteRegister` maps, and the abstract `WrapperAccess` interface |

## Notes on individual devices

- `TimerDevice(name, system_clock_hz, clock=None)` can share a
  `SimClock` with other devices. Writing `PERIOD` or toggling the
  running bit of `MODE` rearms it; at the end of each period `irq` is
  set if `TimerMode.IRQ_ENABLED` is on, and a write to `RESETIRQ`
  clears it.
- `BlockDevice(name, filename, block_size, bus)` performs the operation
  written to its `OP` register only when `run_pending()` is called. The
  `bus` must offer `read(addr, nbytes) -> bytes` and
  `write(addr, data)`, raising `DeviceError` on failure. Software
  reaches the registers through `BlockDevice.slave`.
- `TtyDevice(name, count, outputs=None)` writes to the binary streams
  given in `outputs`. Without them it opens one `xterm` window per
  terminal, running `tty_term_rw` fed through a pipe; both programs must
  be on the `PATH`. `close()` closes the pipes and stops the windows.
- `FramebufferDevice` converts frames to RGB on display in `FbMode.YV16`
  only; in `YVYU` and `YV12` modes the YUV data is stored but the RGB
  frame handed to the viewer is not converted.
- `RamdacDevice(name, viewer=None, frames_to_simulate=0)` raises
  `SystemExit(1)` once it has shown `frames_to_simulate` frames, when
  that number is non-zero.

## What the package does not do

- There is no processor model and no interconnect. Nothing executes
  software: requests are made by calling `handle` (or `rcv_rqst`)
  directly, and `QemuWrapperSlaveDevice` needs a `WrapperAccess`
  implementation supplied by the caller.
- There is no event-driven simulation kernel. Time moves only when a
  `SimClock` is advanced or `TimerDevice.run_until` is called, and block
  transfers happen only in `BlockDevice.run_pending`.
- Nothing is drawn on screen: the framebuffer and the display controller
  pass frames as bytes to the viewer callable they are given.