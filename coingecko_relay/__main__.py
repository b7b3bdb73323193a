from coingecko_relay.main import main

main()
