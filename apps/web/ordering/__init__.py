"""Table ordering - café network gate, menu, cart and order sessions."""
