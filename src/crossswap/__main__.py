from crossswap.main import main

main()
