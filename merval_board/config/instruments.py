from merval_board.schemas.quote import Instrument

# Yahoo Finance symbols; .BA is the Buenos Aires exchange suffix.
MERVAL_INSTRUMENTS: tuple[Instrument, ...] = (
    Instrument(symbol="YPFD.BA", name="YPF"),
    Instrument(symbol="GGAL.BA", name="Grupo Financiero Galicia"),
    Instrument(symbol="BMA.BA", name="Banco Macro"),
    Instrument(symbol="PAMP.BA", name="Pampa Energía"),
    Instrument(symbol="TECO2.BA", name="Telecom Argentina"),
    Instrument(symbol="TXAR.BA", name="Ternium Argentina"),
    Instrument(symbol="COME.BA", name="Sociedad Comercial del Plata"),
    Instrument(symbol="CRES.BA", name="Cresud"),
    Instrument(symbol="EDN.BA", name="Edenor"),
    Instrument(symbol="MIRG.BA", name="Mirgor"),
    Instrument(symbol="LOMA.BA", name="Loma Negra"),
    Instrument(symbol="TGSU2.BA", name="Transportadora de Gas del Sur"),
    Instrument(symbol="SUPV.BA", name="Grupo Supervielle"),
    Instrument(symbol="CEPU.BA", name="Central Puerto"),
    Instrument(symbol="AGRO.BA", name="Agrometal"),
    Instrument(symbol="ALUA.BA", name="Aluar"),
    Instrument(symbol="BBAR.BA", name="Banco BBVA Argentina"),
    Instrument(symbol="HARG.BA", name="Holcim Argentina"),
    Instrument(symbol="METR.BA", name="MetroGAS"),
    Instrument(symbol="TS", name="Tenaris"),
)
