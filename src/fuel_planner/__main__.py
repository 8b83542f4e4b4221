from fuel_planner.cli import main

main()
