"""Engine core: auctions, ledger, fees, storage, configuration"""
