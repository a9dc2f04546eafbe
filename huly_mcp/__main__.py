from huly_mcp.server import main

main()
