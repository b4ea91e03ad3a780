from parodyforge.cli import main

main()
