from btcgraph.api.server import main

main()
