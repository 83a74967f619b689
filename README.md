# citybuilder

A small multiplayer city builder. One player hosts a game and others join
over TCP. Everyone builds on a shared grid: roads and rivers, residential,
commercial and industrial buildings, and bus routes that earn money while
their buses drive back and forth.

## Installing

```
pip install .
```

This installs `pygame`, which draws the window.

## Playing

```
citybuilder
```

The command takes no options apart from `--help`. It opens a 1024x768
window. If a font file `fonts/Unageo-Medium.ttf` exists in the current
directory it is used; otherwise pygame's default font is used.

From the main menu choose **Multiplayer**, enter your name, then either:

- **Host Game**: starts a server on port 7777 and joins it yourself, or
- **Join Game**: connects to the server IP and port you typed in.

If the server cannot listen, the chooser shows "Failed to host server.".
A port that is not a whole number shows "Invalid port!". If the connection
is lost, or never made, the game returns to the main menu with
"Disconnected from server".

In game:

| Input                 | Action                          |
|-----------------------|---------------------------------|
| WASD / arrow keys     | Move the camera                 |
| Mouse wheel           | Zoom (0.5x to 3.0x)             |
| G                     | Toggle the grid                 |
| ESC                   | Leave the game, back to menu    |

Leaving the game while hosting also stops the server.

The toolbar switches between four modes:

- **Infrastructure**: drag to lay a road or a river, snapped to the centres
  of 32-unit grid cells. Roads cost 0.5 per unit of length; rivers are free.
- **Houses**: click to place a building. Residential costs 100, commercial
  250 (adds 5 income every 10 seconds), industrial 1000 (adds 25).
- **Routes**: click points on roads to add bus route nodes, then **Finish
  Route** (or **Cancel Route**). A route needs at least two nodes and must
  lie on roads along its whole length. Each route gets one bus, which earns
  the route length divided by 16 every time it reaches an end.
- **Delete**: click near an object to remove it. A building is looked for
  first, then a road or river, then a bus route node. Roads are refunded,
  and routes that no longer lie on roads are removed with their buses.
  Deleting a commercial or industrial building takes its income away again.

The game starts with 1000 money, shared by all players. When money runs
short the server answers with a status message and nothing is built.

## Using the pieces

The server and client work without the window:

```python
from citybuilder.server import LobbyServer
from citybuilder.client import LobbyClient

server = LobbyServer()
server.start(7777)          # 0 picks a free port; see server.port

client = LobbyClient()
client.connect("127.0.0.1", server.port, "Alice")
client.send_building(48, 48, 0)

# ... later
client.disconnect()
server.stop()
```

`LobbyServer.start` raises `OSError` when it cannot listen.
`LobbyClient.connect` does not raise on failure; check `client.connected`.
The client keeps its copy of the city in `city_lines`, `buildings`,
`bus_routes`, `buses`, `other_cursors` and `money`; hold `client.lock`
while reading them from another thread. `LobbyClient.handle_line` applies
one server line and can be fed lines directly.

`citybuilder.world.GameState` holds the game rules on their own. Its
methods (`add_infrastructure`, `add_building`, `add_bus_route`,
`delete_object`, `advance_buses`, `apply_income`) change the state and
return `Delivery` objects saying which message goes to all players or to
one player, so the rules can be driven and tested without sockets.

Other modules:

- `citybuilder.shared`: constants, `Vector2`, the building and
  infrastructure types, `point_segment_distance` and `snap_to_grid`.
- `citybuilder.textbox`: `TextBox`, the state of a single-line text field.
- `citybuilder.view`: `Camera` (screen/world transforms, panning, zoom,
  visible grid) and the colours used to draw the city.
- `citybuilder.app`: `CityBuilderApp`, the window and its screens, and
  `main`, the command's entry point.

## What it does not do

There is no single-player mode: the only way to play is through a server,
even when hosting on your own machine. The city lives only in the running
server's memory; nothing is saved, and stopping the server loses it.

## Running the tests

```
pip install .[test]
pytest
```